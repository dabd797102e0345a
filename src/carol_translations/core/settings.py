"""Application settings and configuration.

This module defines all configuration options for the carol translation
service. Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Carol Translations", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Bearer tokens are issued by the external identity provider
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Database configuration
    database_url: str = Field(default="sqlite:///./carol_translations.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Proposal workflow
    proposal_default_quorum: int = Field(default=5, ge=1, alias="PROPOSAL_DEFAULT_QUORUM")
    proposal_voting_days: int = Field(default=7, ge=1, alias="PROPOSAL_VOTING_DAYS")
    change_reason_min_length: int = Field(default=5, alias="CHANGE_REASON_MIN_LENGTH")
    change_reason_max_length: int = Field(default=500, alias="CHANGE_REASON_MAX_LENGTH")
    vote_conflict_retries: int = Field(default=3, ge=1, alias="VOTE_CONFLICT_RETRIES")
    promotion_conflict_retries: int = Field(default=3, ge=1, alias="PROMOTION_CONFLICT_RETRIES")

    # Reputation
    voting_power_step: int = Field(default=100, ge=1, alias="VOTING_POWER_STEP")
    author_merge_reward: int = Field(default=5, alias="AUTHOR_MERGE_REWARD")
    voter_alignment_reward: int = Field(default=1, alias="VOTER_ALIGNMENT_REWARD")

    # Leaderboard
    leaderboard_default_limit: int = Field(default=10, ge=1, alias="LEADERBOARD_DEFAULT_LIMIT")
    leaderboard_max_limit: int = Field(default=100, ge=1, alias="LEADERBOARD_MAX_LIMIT")

    # Stale proposal expiry (off keeps proposals pending until quorum)
    proposal_expiry_enabled: bool = Field(default=False, alias="PROPOSAL_EXPIRY_ENABLED")
    proposal_expiry_interval_seconds: float = Field(
        default=300.0,
        alias="PROPOSAL_EXPIRY_INTERVAL_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]

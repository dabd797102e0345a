"""Read-only contributor rankings."""
from __future__ import annotations

from sqlalchemy.orm import Session

from carol_translations.core.errors import ValidationError
from carol_translations.core.settings import settings
from carol_translations.models import ContributorReputation
from carol_translations.repositories import ReputationRepository


def clamp_limit(limit: int | None) -> int:
    """Bound a requested leaderboard size to ``1..LEADERBOARD_MAX_LIMIT``."""
    if limit is None:
        return settings.leaderboard_default_limit
    return max(1, min(limit, settings.leaderboard_max_limit))


def get_leaderboard(db: Session, language: str, limit: int | None = None) -> list[ContributorReputation]:
    """Return contributors for ``language`` ranked by reputation, highest first."""
    if not language or len(language) > 10:
        raise ValidationError("language must be between 1 and 10 characters")
    return ReputationRepository(db).top(language, clamp_limit(limit))

"""Data access helpers for contributor reputation.

Point changes are single-statement upserts so concurrent resolutions never
read-modify-write the same row in process memory.
"""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import case, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from carol_translations.core.errors import StoreError
from carol_translations.db.time import utcnow
from carol_translations.models import ContributorReputation

from ._base import BaseRepository, store_errors

__all__ = ["ReputationRepository"]

_UPSERT_DIALECTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class ReputationRepository(BaseRepository):
    """Database access for per-user, per-language reputation rows."""

    def _insert(self) -> Any:
        try:
            insert_factory = _UPSERT_DIALECTS[self.dialect_name]
        except KeyError as err:
            raise StoreError(f"Unsupported database dialect: {self.dialect_name}") from err
        return insert_factory(ContributorReputation)

    def get(self, user_id: str, language: str, *, fresh: bool = False) -> ContributorReputation | None:
        """Return the reputation row for a user and language."""
        with store_errors("load reputation"):
            return self.session.get(
                ContributorReputation, (user_id, language), populate_existing=fresh
            )

    def ensure(self, user_id: str, language: str) -> ContributorReputation:
        """Create the row with zero points if absent and return it."""
        now = utcnow()
        stmt = (
            self._insert()
            .values(
                user_id=user_id,
                language=language,
                rep_points=0,
                translations_approved=0,
                proposals_approved=0,
                is_moderator=False,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["user_id", "language"])
        )
        with store_errors("create reputation"):
            self.session.execute(stmt)
            reputation = self.get(user_id, language, fresh=True)
        if reputation is None:  # pragma: no cover - upsert guarantees the row
            raise StoreError("Failed to create reputation")
        return reputation

    def increment(
        self,
        user_id: str,
        language: str,
        delta: int,
        *,
        proposals_approved: int = 0,
        translations_approved: int = 0,
    ) -> None:
        """Atomically add ``delta`` points, clamping the total at zero."""
        now = utcnow()
        table = ContributorReputation.__table__
        stmt = self._insert().values(
            user_id=user_id,
            language=language,
            rep_points=max(delta, 0),
            translations_approved=translations_approved,
            proposals_approved=proposals_approved,
            is_moderator=False,
            created_at=now,
            updated_at=now,
        )
        summed = table.c.rep_points + delta
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "language"],
            set_={
                "rep_points": case((summed < 0, 0), else_=summed),
                "proposals_approved": table.c.proposals_approved + proposals_approved,
                "translations_approved": table.c.translations_approved + translations_approved,
                "updated_at": now,
            },
        )
        with store_errors("adjust reputation"):
            self.session.execute(stmt)

    def increment_many(self, user_ids: Iterable[str], language: str, delta: int) -> None:
        """Apply the same point delta to several users."""
        for user_id in sorted(set(user_ids)):
            self.increment(user_id, language, delta)

    def top(self, language: str, limit: int) -> list[ContributorReputation]:
        """Return the highest-ranked contributors for a language."""
        stmt = (
            select(ContributorReputation)
            .where(ContributorReputation.language == language)
            .order_by(
                ContributorReputation.rep_points.desc(),
                ContributorReputation.proposals_approved.desc(),
                ContributorReputation.user_id.asc(),
            )
            .limit(limit)
        )
        with store_errors("load leaderboard"):
            return list(self.session.scalars(stmt))

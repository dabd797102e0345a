"""Per-user, per-language contributor reputation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from carol_translations.db.time import utcnow
from carol_translations.db.session import Base


class ContributorReputation(Base):
    """Reputation points a user has earned in one language."""

    __tablename__ = "contributor_reputation"
    __table_args__ = (
        CheckConstraint("rep_points >= 0", name="ck_contributor_reputation_points"),
        Index("ix_contributor_reputation_ranking", "language", "rep_points"),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    language: Mapped[str] = mapped_column(String(10), primary_key=True)
    rep_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    translations_approved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    proposals_approved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_moderator: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

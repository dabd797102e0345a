"""Models for carol translations and their merge history."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from carol_translations.db.session import Base
from carol_translations.db.time import utcnow

SOURCE_AI_GENERATED = "ai_generated"
SOURCE_COMMUNITY = "community"
TRANSLATION_SOURCES = (SOURCE_AI_GENERATED, SOURCE_COMMUNITY)


class Translation(Base):
    """One language's rendering of a carol.

    Superseded rows are kept for history; only the ``is_canonical`` flag moves.
    """

    __tablename__ = "carol_translation"
    __table_args__ = (
        CheckConstraint(
            "source IN ('ai_generated', 'community')",
            name="ck_carol_translation_source",
        ),
        Index("ix_carol_translation_pair", "carol_id", "language"),
        # At most one canonical row per (carol, language).
        Index(
            "uq_carol_translation_canonical",
            "carol_id",
            "language",
            unique=True,
            sqlite_where=text("is_canonical = 1"),
            postgresql_where=text("is_canonical"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    carol_id: Mapped[str] = mapped_column(String(64), nullable=False)
    language: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    lyrics: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default=SOURCE_AI_GENERATED)
    is_canonical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Bumped on every canonical flip; guards compare-and-swap promotions.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class TranslationHistory(Base):
    """Audit record written whenever a proposal replaces a canonical translation."""

    __tablename__ = "translation_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    translation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("carol_translation.id"),
        nullable=False,
        index=True,
    )
    previous_translation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("carol_translation.id"),
        nullable=False,
        index=True,
    )
    proposal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("translation_proposal.id"),
        nullable=False,
    )
    previous_title: Mapped[str] = mapped_column(Text, nullable=False)
    previous_lyrics: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    changed_by: Mapped[str] = mapped_column(String(128), nullable=False)
    change_reason: Mapped[str] = mapped_column(Text, nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

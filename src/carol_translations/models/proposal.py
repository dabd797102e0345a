"""Models capturing translation proposals and the votes cast on them."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from carol_translations.db.session import Base
from carol_translations.db.time import utcnow

PROPOSAL_STATUS_PENDING = "pending"
PROPOSAL_STATUS_MERGED = "merged"
PROPOSAL_STATUS_REJECTED = "rejected"

VOTE_UP = 1
VOTE_DOWN = -1


class TranslationProposal(Base):
    """A pending community edit to a translation.

    ``upvotes``/``downvotes`` hold reputation-weighted points while
    ``vote_count`` holds the number of distinct voters used for quorum.
    """

    __tablename__ = "translation_proposal"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'merged', 'rejected')",
            name="ck_translation_proposal_status",
        ),
        CheckConstraint(
            "new_title IS NOT NULL OR new_lyrics IS NOT NULL",
            name="ck_translation_proposal_has_change",
        ),
        Index("ix_translation_proposal_target", "translation_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    translation_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("carol_translation.id"),
        nullable=False,
    )
    proposed_by: Mapped[str] = mapped_column(String(128), nullable=False)
    new_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_lyrics: Mapped[list[str] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    change_reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PROPOSAL_STATUS_PENDING
    )
    upvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_quorum: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    voting_ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Incremented by every tally or status write; the compare-and-swap key.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class ProposalVote(Base):
    """One user's weighted vote on one proposal."""

    __tablename__ = "proposal_vote"
    __table_args__ = (
        CheckConstraint("vote IN (1, -1)", name="ck_proposal_vote_direction"),
        CheckConstraint("weight >= 1", name="ck_proposal_vote_weight"),
    )

    # Composite primary key prevents duplicate votes from the same user.
    proposal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("translation_proposal.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # 1 = upvote, -1 = downvote.
    vote: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    # Voting power of the caster at cast time.
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

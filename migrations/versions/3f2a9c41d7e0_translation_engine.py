"""translation engine tables

Revision ID: 3f2a9c41d7e0
Revises:
Create Date: 2026-10-19 09:12:44.517203

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3f2a9c41d7e0"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create translation, proposal, vote, reputation, and history tables."""
    op.create_table(
        "carol_translation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("carol_id", sa.String(length=64), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("lyrics", sa.JSON(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("is_canonical", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=128), nullable=True),
        sa.Column("upvotes", sa.Integer(), nullable=False),
        sa.Column("downvotes", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "source IN ('ai_generated', 'community')",
            name="ck_carol_translation_source",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_carol_translation_pair", "carol_translation", ["carol_id", "language"])
    op.create_index(
        "uq_carol_translation_canonical",
        "carol_translation",
        ["carol_id", "language"],
        unique=True,
        sqlite_where=sa.text("is_canonical = 1"),
        postgresql_where=sa.text("is_canonical"),
    )

    op.create_table(
        "translation_proposal",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("translation_id", sa.Integer(), nullable=False),
        sa.Column("proposed_by", sa.String(length=128), nullable=False),
        sa.Column("new_title", sa.Text(), nullable=True),
        sa.Column("new_lyrics", sa.JSON(none_as_null=True), nullable=True),
        sa.Column("change_reason", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("upvotes", sa.Integer(), nullable=False),
        sa.Column("downvotes", sa.Integer(), nullable=False),
        sa.Column("vote_count", sa.Integer(), nullable=False),
        sa.Column("required_quorum", sa.Integer(), nullable=False),
        sa.Column("voting_ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'merged', 'rejected')",
            name="ck_translation_proposal_status",
        ),
        sa.CheckConstraint(
            "new_title IS NOT NULL OR new_lyrics IS NOT NULL",
            name="ck_translation_proposal_has_change",
        ),
        sa.ForeignKeyConstraint(["translation_id"], ["carol_translation.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_translation_proposal_target",
        "translation_proposal",
        ["translation_id", "status"],
    )

    op.create_table(
        "proposal_vote",
        sa.Column("proposal_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("vote", sa.SmallInteger(), nullable=False),
        sa.Column("weight", sa.Integer(), nullable=False),
        sa.Column("cast_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("vote IN (1, -1)", name="ck_proposal_vote_direction"),
        sa.CheckConstraint("weight >= 1", name="ck_proposal_vote_weight"),
        sa.ForeignKeyConstraint(
            ["proposal_id"], ["translation_proposal.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("proposal_id", "user_id"),
    )

    op.create_table(
        "contributor_reputation",
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("language", sa.String(length=10), nullable=False),
        sa.Column("rep_points", sa.Integer(), nullable=False),
        sa.Column("translations_approved", sa.Integer(), nullable=False),
        sa.Column("proposals_approved", sa.Integer(), nullable=False),
        sa.Column("is_moderator", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("rep_points >= 0", name="ck_contributor_reputation_points"),
        sa.PrimaryKeyConstraint("user_id", "language"),
    )
    op.create_index(
        "ix_contributor_reputation_ranking",
        "contributor_reputation",
        ["language", "rep_points"],
    )

    op.create_table(
        "translation_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("translation_id", sa.Integer(), nullable=False),
        sa.Column("previous_translation_id", sa.Integer(), nullable=False),
        sa.Column("proposal_id", sa.Integer(), nullable=False),
        sa.Column("previous_title", sa.Text(), nullable=False),
        sa.Column("previous_lyrics", sa.JSON(), nullable=False),
        sa.Column("changed_by", sa.String(length=128), nullable=False),
        sa.Column("change_reason", sa.Text(), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["translation_id"], ["carol_translation.id"]),
        sa.ForeignKeyConstraint(["previous_translation_id"], ["carol_translation.id"]),
        sa.ForeignKeyConstraint(["proposal_id"], ["translation_proposal.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_translation_history_translation_id", "translation_history", ["translation_id"]
    )
    op.create_index(
        "ix_translation_history_previous_translation_id",
        "translation_history",
        ["previous_translation_id"],
    )


def downgrade() -> None:
    """Drop the translation engine tables."""
    op.drop_table("translation_history")
    op.drop_index("ix_contributor_reputation_ranking", table_name="contributor_reputation")
    op.drop_table("contributor_reputation")
    op.drop_table("proposal_vote")
    op.drop_index("ix_translation_proposal_target", table_name="translation_proposal")
    op.drop_table("translation_proposal")
    op.drop_index("uq_carol_translation_canonical", table_name="carol_translation")
    op.drop_index("ix_carol_translation_pair", table_name="carol_translation")
    op.drop_table("carol_translation")

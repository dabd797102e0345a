"""Data access helpers for proposals and proposal votes."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from carol_translations.core.errors import DuplicateVoteError
from carol_translations.models import ProposalVote, TranslationProposal
from carol_translations.models.proposal import PROPOSAL_STATUS_PENDING

from ._base import BaseRepository, store_errors

__all__ = ["ProposalRepository"]


class ProposalRepository(BaseRepository):
    """Thin wrapper around database access for proposals and their votes."""

    def get(self, proposal_id: int, *, fresh: bool = False) -> TranslationProposal | None:
        """Return a proposal by identifier."""
        with store_errors("load proposal"):
            return self.session.get(
                TranslationProposal, proposal_id, populate_existing=fresh
            )

    def add(
        self,
        *,
        translation_id: int,
        proposed_by: str,
        new_title: str | None,
        new_lyrics: Sequence[str] | None,
        change_reason: str,
        required_quorum: int,
        voting_ends_at: datetime,
        created_at: datetime,
    ) -> TranslationProposal:
        """Insert a pending proposal with zeroed tallies."""
        proposal = TranslationProposal(
            translation_id=translation_id,
            proposed_by=proposed_by,
            new_title=new_title,
            new_lyrics=list(new_lyrics) if new_lyrics is not None else None,
            change_reason=change_reason,
            status=PROPOSAL_STATUS_PENDING,
            upvotes=0,
            downvotes=0,
            vote_count=0,
            required_quorum=required_quorum,
            voting_ends_at=voting_ends_at,
            created_at=created_at,
            version=1,
        )
        with store_errors("create proposal"):
            self.session.add(proposal)
            self.session.flush()
        return proposal

    def list_pending(self, translation_id: int) -> list[TranslationProposal]:
        """Return pending proposals for a translation, oldest first."""
        stmt = (
            select(TranslationProposal)
            .where(
                TranslationProposal.translation_id == translation_id,
                TranslationProposal.status == PROPOSAL_STATUS_PENDING,
            )
            .order_by(TranslationProposal.created_at.asc(), TranslationProposal.id.asc())
        )
        with store_errors("list pending proposals"):
            return list(self.session.scalars(stmt))

    def list_expired_pending(self, now: datetime) -> list[TranslationProposal]:
        """Return pending proposals whose voting window closed at or before ``now``."""
        stmt = (
            select(TranslationProposal)
            .where(
                TranslationProposal.status == PROPOSAL_STATUS_PENDING,
                TranslationProposal.voting_ends_at <= now,
            )
            .order_by(TranslationProposal.voting_ends_at.asc(), TranslationProposal.id.asc())
        )
        with store_errors("list expired proposals"):
            return list(self.session.scalars(stmt))

    def get_vote(self, proposal_id: int, user_id: str) -> ProposalVote | None:
        """Return the vote a user cast on a proposal, if any."""
        with store_errors("load vote"):
            return self.session.get(ProposalVote, (proposal_id, user_id))

    def list_votes(self, proposal_id: int) -> list[ProposalVote]:
        """Return every vote cast on a proposal in casting order."""
        stmt = (
            select(ProposalVote)
            .where(ProposalVote.proposal_id == proposal_id)
            .order_by(ProposalVote.cast_at.asc())
        )
        with store_errors("list votes"):
            return list(self.session.scalars(stmt))

    def insert_vote(self, *, proposal_id: int, user_id: str, vote: int, weight: int) -> ProposalVote:
        """Insert a vote row, relying on the composite primary key for uniqueness.

        Raises:
            DuplicateVoteError: If the user already has a vote on the proposal.
                The session must be rolled back by the caller.
        """
        record = ProposalVote(proposal_id=proposal_id, user_id=user_id, vote=vote, weight=weight)
        with store_errors("record vote"):
            try:
                self.session.add(record)
                self.session.flush()
            except IntegrityError as exc:
                raise DuplicateVoteError() from exc
        return record

    def compare_and_set(
        self, proposal_id: int, expected_version: int, **values: Any
    ) -> bool:
        """Write ``values`` if the proposal is still pending at ``expected_version``.

        The version is bumped as part of the same statement. Returns False when
        a concurrent writer got there first.
        """
        stmt = (
            update(TranslationProposal)
            .where(
                TranslationProposal.id == proposal_id,
                TranslationProposal.status == PROPOSAL_STATUS_PENDING,
                TranslationProposal.version == expected_version,
            )
            .values(version=expected_version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        with store_errors("update proposal"):
            result = self.session.execute(stmt)
        return result.rowcount == 1

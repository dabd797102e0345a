"""Proposal workflow: creation, weighted voting, quorum resolution, and expiry.

A proposal moves from ``pending`` to exactly one of ``merged`` or
``rejected``. Quorum counts distinct voters; the merge decision compares the
reputation-weighted tallies, with ties going to rejection.

Casting a vote is one unit of work: the duplicate check, vote insert, tally
update, resolution, canonical promotion, and reputation settlement commit
together or not at all. The tally write is a compare-and-swap on the
proposal's version column, so two concurrent voters can never both resolve
the same proposal or double count a vote.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carol_translations.core.errors import (
    ConflictError,
    DuplicateVoteError,
    InvalidStateError,
    NotFoundError,
    PromotionConflictError,
    StoreError,
    TranslationEngineError,
    ValidationError,
)
from carol_translations.core.settings import settings
from carol_translations.db.time import as_utc, utcnow, voting_deadline
from carol_translations.models import ProposalVote, Translation, TranslationProposal
from carol_translations.models.proposal import (
    PROPOSAL_STATUS_MERGED,
    PROPOSAL_STATUS_PENDING,
    PROPOSAL_STATUS_REJECTED,
    VOTE_DOWN,
    VOTE_UP,
)
from carol_translations.repositories import ProposalRepository
from carol_translations.services.registry import TranslationPatch, TranslationRegistry
from carol_translations.services.reputation import ReputationLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteOutcome:
    """Result of a successfully recorded vote."""

    proposal_id: int
    vote: int
    weight: int
    status: str
    upvotes: int
    downvotes: int
    vote_count: int
    promoted_translation_id: int | None = None


class _TallyConflict(Exception):
    """Another writer updated the proposal between our read and our write."""


class _VotingWindowClosed(Exception):
    """The proposal was expired instead of accepting the vote."""


class ProposalWorkflow:
    """Service handling proposal creation, voting, and resolution."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.proposals = ProposalRepository(db)
        self.registry = TranslationRegistry(db)
        self.ledger = ReputationLedger(db)

    # -- reads -------------------------------------------------------------

    def get_proposal(self, proposal_id: int) -> TranslationProposal:
        """Return a proposal or raise :class:`NotFoundError`."""
        proposal = self.proposals.get(proposal_id)
        if proposal is None:
            raise NotFoundError("Proposal not found")
        return proposal

    def get_pending_proposals(self, translation_id: int) -> list[TranslationProposal]:
        """Return pending proposals for a translation, oldest first."""
        return self.proposals.list_pending(translation_id)

    def get_user_vote(self, proposal_id: int, user_id: str) -> ProposalVote | None:
        """Return the vote a user cast on a proposal, if any."""
        self.get_proposal(proposal_id)
        return self.proposals.get_vote(proposal_id, user_id)

    # -- creation ----------------------------------------------------------

    def create_proposal(
        self,
        translation_id: int,
        proposed_by: str,
        *,
        change_reason: str,
        new_title: str | None = None,
        new_lyrics: Sequence[str] | None = None,
        required_quorum: int | None = None,
        now: datetime | None = None,
    ) -> TranslationProposal:
        """Open a proposal against a translation with a fresh voting window.

        Raises:
            ValidationError: If neither a title nor lyrics are proposed, the
                change reason is out of bounds, or the quorum is below one.
            NotFoundError: If the target translation does not exist.
        """
        if new_title is not None and not new_title.strip():
            new_title = None
        if new_lyrics is not None and len(new_lyrics) == 0:
            new_lyrics = None
        patch = TranslationPatch.from_proposal(new_title, new_lyrics)
        if patch.is_empty:
            raise ValidationError("At least one of newTitle or newLyrics must be provided")

        reason = (change_reason or "").strip()
        if not settings.change_reason_min_length <= len(reason) <= settings.change_reason_max_length:
            raise ValidationError(
                f"changeReason must be between {settings.change_reason_min_length} and "
                f"{settings.change_reason_max_length} characters"
            )

        quorum = settings.proposal_default_quorum if required_quorum is None else required_quorum
        if quorum < 1:
            raise ValidationError("requiredQuorum must be at least 1")

        self.registry.get_translation(translation_id)
        opened_at = as_utc(now) if now is not None else utcnow()
        try:
            proposal = self.proposals.add(
                translation_id=translation_id,
                proposed_by=proposed_by,
                new_title=patch.title,
                new_lyrics=patch.lyrics,
                change_reason=reason,
                required_quorum=quorum,
                voting_ends_at=voting_deadline(opened_at, settings.proposal_voting_days),
                created_at=opened_at,
            )
            self.db.commit()
        except TranslationEngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to commit proposal for translation %s", translation_id, exc_info=True)
            raise StoreError("Failed to create proposal") from exc

        logger.info(
            "Proposal %s opened on translation %s by %s (quorum %d)",
            proposal.id,
            translation_id,
            proposed_by,
            quorum,
        )
        return proposal

    # -- voting ------------------------------------------------------------

    def vote_on_proposal(
        self,
        proposal_id: int,
        user_id: str,
        vote: int,
        *,
        now: datetime | None = None,
    ) -> VoteOutcome:
        """Record a reputation-weighted vote and resolve the proposal on quorum.

        Raises:
            ValidationError: If ``vote`` is not +1 or -1.
            NotFoundError: If the proposal or its translation does not exist.
            InvalidStateError: If the proposal is no longer pending.
            DuplicateVoteError: If the user already voted on this proposal.
            ConflictError: If concurrent voters kept invalidating the tally.
            StoreError: On unexpected persistence failures. Never retried here.
        """
        if vote not in (VOTE_UP, VOTE_DOWN):
            raise ValidationError("vote must be 1 (upvote) or -1 (downvote)")
        cast_at = as_utc(now) if now is not None else utcnow()

        attempts = settings.vote_conflict_retries
        for attempt in range(1, attempts + 1):
            try:
                outcome = self._cast_vote(proposal_id, user_id, vote, cast_at)
                self.db.commit()
            except _TallyConflict:
                self.db.rollback()
                logger.debug(
                    "Tally conflict on proposal %s (attempt %d/%d)", proposal_id, attempt, attempts
                )
                continue
            except _VotingWindowClosed:
                self.db.commit()
                raise InvalidStateError("Voting window for this proposal has closed") from None
            except DuplicateVoteError:
                self.db.rollback()
                logger.info("Rejected duplicate vote by %s on proposal %s", user_id, proposal_id)
                raise
            except TranslationEngineError:
                self.db.rollback()
                raise
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("Failed to record vote on proposal %s", proposal_id, exc_info=True)
                raise StoreError("Failed to record vote") from exc

            if outcome.status != PROPOSAL_STATUS_PENDING:
                logger.info(
                    "Proposal %s resolved as %s (%d up / %d down over %d votes)",
                    proposal_id,
                    outcome.status,
                    outcome.upvotes,
                    outcome.downvotes,
                    outcome.vote_count,
                )
            return outcome

        logger.warning("Giving up on vote for proposal %s after %d conflicts", proposal_id, attempts)
        raise ConflictError("Proposal is receiving too many concurrent votes, try again")

    def _cast_vote(self, proposal_id: int, user_id: str, vote: int, now: datetime) -> VoteOutcome:
        proposal = self.proposals.get(proposal_id, fresh=True)
        if proposal is None:
            raise NotFoundError("Proposal not found")
        if proposal.status != PROPOSAL_STATUS_PENDING:
            raise InvalidStateError("Voting is closed for this proposal")
        if settings.proposal_expiry_enabled and as_utc(proposal.voting_ends_at) <= now:
            if not self.proposals.compare_and_set(
                proposal.id,
                proposal.version,
                status=PROPOSAL_STATUS_REJECTED,
                resolved_at=now,
            ):
                raise _TallyConflict()
            self.db.expire(proposal)
            logger.info("Proposal %s expired without reaching quorum", proposal_id)
            raise _VotingWindowClosed()

        # Fast path only; the composite primary key is the real guard.
        if self.proposals.get_vote(proposal.id, user_id) is not None:
            raise DuplicateVoteError()

        target = self.registry.get_translation(proposal.translation_id)
        weight = self.ledger.voting_power(user_id, target.language)
        self.proposals.insert_vote(
            proposal_id=proposal.id, user_id=user_id, vote=vote, weight=weight
        )

        upvotes = proposal.upvotes + (weight if vote == VOTE_UP else 0)
        downvotes = proposal.downvotes + (weight if vote == VOTE_DOWN else 0)
        vote_count = proposal.vote_count + 1
        values: dict[str, object] = {
            "upvotes": upvotes,
            "downvotes": downvotes,
            "vote_count": vote_count,
        }
        status = PROPOSAL_STATUS_PENDING
        if vote_count >= proposal.required_quorum:
            status = PROPOSAL_STATUS_MERGED if upvotes > downvotes else PROPOSAL_STATUS_REJECTED
            values.update(status=status, resolved_at=now)

        if not self.proposals.compare_and_set(proposal.id, proposal.version, **values):
            raise _TallyConflict()
        self.db.expire(proposal)

        promoted: Translation | None = None
        if status == PROPOSAL_STATUS_MERGED:
            promoted = self._merge(proposal, target)
        if status != PROPOSAL_STATUS_PENDING:
            self._settle_reputation(proposal, target.language, status)

        return VoteOutcome(
            proposal_id=proposal_id,
            vote=vote,
            weight=weight,
            status=status,
            upvotes=upvotes,
            downvotes=downvotes,
            vote_count=vote_count,
            promoted_translation_id=promoted.id if promoted is not None else None,
        )

    def _merge(self, proposal: TranslationProposal, target: Translation) -> Translation:
        """Promote the proposal's changes over whatever is canonical right now."""
        patch = TranslationPatch.from_proposal(proposal.new_title, proposal.new_lyrics)
        attempts = settings.promotion_conflict_retries
        for attempt in range(1, attempts + 1):
            current = self.registry.get_canonical_translation(
                target.carol_id, target.language, fresh=True
            )
            base = current if current is not None else target
            title, lyrics = patch.apply_to(base)
            try:
                promoted = self.registry.promote_translation(
                    carol_id=target.carol_id,
                    language=target.language,
                    title=title,
                    lyrics=lyrics,
                    created_by=proposal.proposed_by,
                    previous=current,
                )
            except PromotionConflictError as conflict:
                if not conflict.retryable or attempt == attempts:
                    raise
                logger.warning(
                    "Canonical translation moved while merging proposal %s, retrying (%d/%d)",
                    proposal.id,
                    attempt,
                    attempts,
                )
                continue

            self.registry.repo.add_history(
                translation_id=promoted.id,
                previous=base,
                proposal_id=proposal.id,
                changed_by=proposal.proposed_by,
                change_reason=proposal.change_reason,
            )
            return promoted

        raise PromotionConflictError("Could not promote translation")  # pragma: no cover

    def _settle_reputation(self, proposal: TranslationProposal, language: str, status: str) -> None:
        if status == PROPOSAL_STATUS_MERGED:
            self.ledger.reward_author(proposal.proposed_by, language)
        winning_side = VOTE_UP if status == PROPOSAL_STATUS_MERGED else VOTE_DOWN
        self.ledger.reward_voters(
            (v.user_id for v in self.proposals.list_votes(proposal.id) if v.vote == winning_side),
            language,
        )

    # -- expiry ------------------------------------------------------------

    def expire_stale_proposals(self, now: datetime | None = None) -> list[int]:
        """Reject pending proposals whose voting window has elapsed.

        Returns the ids of the proposals this call expired. Proposals touched
        by a concurrent vote in the meantime are left for the next sweep.
        """
        cutoff = as_utc(now) if now is not None else utcnow()
        expired: list[int] = []
        try:
            for proposal in self.proposals.list_expired_pending(cutoff):
                if self.proposals.compare_and_set(
                    proposal.id,
                    proposal.version,
                    status=PROPOSAL_STATUS_REJECTED,
                    resolved_at=cutoff,
                ):
                    expired.append(proposal.id)
                    self.db.expire(proposal)
            self.db.commit()
        except TranslationEngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to expire stale proposals", exc_info=True)
            raise StoreError("Failed to expire proposals") from exc

        if expired:
            logger.info("Expired %d stale proposal(s): %s", len(expired), expired)
        return expired

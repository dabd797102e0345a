# tests/services/test_proposal_workflow.py
"""Tests for proposal creation, weighted voting, and resolution."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select

from carol_translations.core.errors import (
    ConflictError,
    DuplicateVoteError,
    InvalidStateError,
    NotFoundError,
    PromotionConflictError,
    ValidationError,
)
from carol_translations.core.settings import settings
from carol_translations.db.time import as_utc
from carol_translations.models import ProposalVote, Translation
from carol_translations.models.proposal import (
    PROPOSAL_STATUS_MERGED,
    PROPOSAL_STATUS_PENDING,
    PROPOSAL_STATUS_REJECTED,
    VOTE_DOWN,
    VOTE_UP,
)
from carol_translations.repositories import ProposalRepository, ReputationRepository
from carol_translations.services.proposals import ProposalWorkflow
from carol_translations.services.registry import TranslationRegistry

OPENED_AT = datetime(2025, 12, 1, 18, 30, tzinfo=UTC)


@pytest.fixture()
def workflow(db_session) -> ProposalWorkflow:
    return ProposalWorkflow(db_session)


def _propose(workflow, translation, **overrides):
    fields = {
        "change_reason": "Smoother rhythm for singing",
        "new_title": "Noche de luz",
        "required_quorum": 1,
    }
    fields.update(overrides)
    return workflow.create_proposal(translation.id, "author", **fields)


def _points(db_session, user_id: str, language: str = "es") -> int:
    row = ReputationRepository(db_session).get(user_id, language, fresh=True)
    return row.rep_points if row is not None else 0


def _canonical_rows(db_session, carol_id: str, language: str) -> list[Translation]:
    return list(
        db_session.scalars(
            select(Translation).where(
                Translation.carol_id == carol_id,
                Translation.language == language,
                Translation.is_canonical.is_(True),
            )
        )
    )


# -- creation ----------------------------------------------------------------


def test_create_proposal_opens_seven_day_window(workflow, translation) -> None:
    proposal = _propose(workflow, translation, required_quorum=None, now=OPENED_AT)

    assert proposal.status == PROPOSAL_STATUS_PENDING
    assert proposal.upvotes == 0
    assert proposal.downvotes == 0
    assert proposal.vote_count == 0
    assert proposal.required_quorum == 5
    assert as_utc(proposal.voting_ends_at) == OPENED_AT + timedelta(days=7)


def test_create_proposal_with_lyrics_only(workflow, translation) -> None:
    proposal = _propose(workflow, translation, new_title=None, new_lyrics=["Noche de paz"])

    assert proposal.new_title is None
    assert proposal.new_lyrics == ["Noche de paz"]


def test_create_proposal_requires_a_change(workflow, translation) -> None:
    with pytest.raises(ValidationError):
        _propose(workflow, translation, new_title=None, new_lyrics=None)


def test_create_proposal_treats_blank_fields_as_absent(workflow, translation) -> None:
    with pytest.raises(ValidationError):
        _propose(workflow, translation, new_title="   ", new_lyrics=[])


@pytest.mark.parametrize("reason", ["abcd", "   abc   ", "x" * 501])
def test_create_proposal_bounds_change_reason(workflow, translation, reason: str) -> None:
    with pytest.raises(ValidationError):
        _propose(workflow, translation, change_reason=reason)


def test_create_proposal_accepts_reason_at_bounds(workflow, translation) -> None:
    assert _propose(workflow, translation, change_reason="abcde").change_reason == "abcde"
    assert len(_propose(workflow, translation, change_reason="y" * 500).change_reason) == 500


def test_create_proposal_rejects_zero_quorum(workflow, translation) -> None:
    with pytest.raises(ValidationError):
        _propose(workflow, translation, required_quorum=0)


def test_create_proposal_unknown_translation(workflow) -> None:
    with pytest.raises(NotFoundError):
        workflow.create_proposal(
            4242, "author", change_reason="Fix the chorus", new_title="Anything"
        )


def test_pending_proposals_oldest_first(workflow, translation) -> None:
    newer = _propose(workflow, translation, now=OPENED_AT + timedelta(hours=1))
    older = _propose(workflow, translation, now=OPENED_AT)
    resolved = _propose(workflow, translation, now=OPENED_AT - timedelta(hours=1))
    workflow.vote_on_proposal(resolved.id, "voter", VOTE_DOWN)

    pending = workflow.get_pending_proposals(translation.id)

    assert [p.id for p in pending] == [older.id, newer.id]


# -- voting ------------------------------------------------------------------


def test_single_upvote_with_quorum_one_merges(db_session, workflow, translation) -> None:
    proposal = _propose(workflow, translation)

    outcome = workflow.vote_on_proposal(proposal.id, "voter", VOTE_UP)

    assert outcome.status == PROPOSAL_STATUS_MERGED
    canonical = _canonical_rows(db_session, translation.carol_id, "es")
    assert len(canonical) == 1
    assert canonical[0].id == outcome.promoted_translation_id
    assert canonical[0].title == "Noche de luz"
    assert canonical[0].lyrics == translation.lyrics
    db_session.refresh(proposal)
    assert proposal.status == PROPOSAL_STATUS_MERGED
    assert proposal.resolved_at is not None


def test_tie_with_quorum_two_rejects(db_session, workflow, translation) -> None:
    proposal = _propose(workflow, translation, required_quorum=2)

    first = workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)
    second = workflow.vote_on_proposal(proposal.id, "u2", VOTE_DOWN)

    assert first.status == PROPOSAL_STATUS_PENDING
    assert second.status == PROPOSAL_STATUS_REJECTED
    assert (second.upvotes, second.downvotes) == (1, 1)
    canonical = _canonical_rows(db_session, translation.carol_id, "es")
    assert [row.id for row in canonical] == [translation.id]


def test_duplicate_vote_leaves_tallies_unchanged(db_session, workflow, translation) -> None:
    proposal = _propose(workflow, translation, required_quorum=3)
    workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    with pytest.raises(DuplicateVoteError):
        workflow.vote_on_proposal(proposal.id, "u1", VOTE_DOWN)

    db_session.refresh(proposal)
    assert (proposal.upvotes, proposal.downvotes, proposal.vote_count) == (1, 0, 1)
    assert workflow.get_user_vote(proposal.id, "u1").vote == VOTE_UP
    # The session is still usable after the rejected vote.
    assert workflow.vote_on_proposal(proposal.id, "u2", VOTE_UP).vote_count == 2


def test_weighted_vote_breaks_headcount_tie(db_session, workflow, translation, set_reputation) -> None:
    set_reputation("veteran", "es", 150)
    proposal = _propose(workflow, translation, required_quorum=2)

    workflow.vote_on_proposal(proposal.id, "newcomer", VOTE_DOWN)
    outcome = workflow.vote_on_proposal(proposal.id, "veteran", VOTE_UP)

    assert outcome.weight == 2
    assert outcome.status == PROPOSAL_STATUS_MERGED
    assert (outcome.upvotes, outcome.downvotes, outcome.vote_count) == (2, 1, 2)


def test_quorum_counts_voters_not_weight(workflow, translation, set_reputation) -> None:
    set_reputation("veteran", "es", 900)
    proposal = _propose(workflow, translation, required_quorum=2)

    outcome = workflow.vote_on_proposal(proposal.id, "veteran", VOTE_UP)

    assert outcome.weight == 10
    assert outcome.status == PROPOSAL_STATUS_PENDING


def test_voting_power_uses_target_language(workflow, translation, set_reputation) -> None:
    set_reputation("polyglot", "de", 500)
    proposal = _propose(workflow, translation, required_quorum=3)

    assert workflow.vote_on_proposal(proposal.id, "polyglot", VOTE_UP).weight == 1


def test_terminal_proposal_rejects_votes(db_session, workflow, translation) -> None:
    proposal = _propose(workflow, translation)
    workflow.vote_on_proposal(proposal.id, "u1", VOTE_DOWN)

    with pytest.raises(InvalidStateError):
        workflow.vote_on_proposal(proposal.id, "u2", VOTE_UP)

    db_session.refresh(proposal)
    assert proposal.status == PROPOSAL_STATUS_REJECTED
    assert proposal.vote_count == 1


def test_vote_on_unknown_proposal(workflow) -> None:
    with pytest.raises(NotFoundError):
        workflow.vote_on_proposal(31337, "u1", VOTE_UP)


@pytest.mark.parametrize("value", [0, 2, -3])
def test_vote_value_must_be_directional(workflow, translation, value: int) -> None:
    proposal = _propose(workflow, translation)

    with pytest.raises(ValidationError):
        workflow.vote_on_proposal(proposal.id, "u1", value)


def test_get_user_vote_records_weight(workflow, translation, set_reputation) -> None:
    set_reputation("veteran", "es", 250)
    proposal = _propose(workflow, translation, required_quorum=2)

    workflow.vote_on_proposal(proposal.id, "veteran", VOTE_UP)

    vote = workflow.get_user_vote(proposal.id, "veteran")
    assert (vote.vote, vote.weight) == (VOTE_UP, 3)
    assert workflow.get_user_vote(proposal.id, "someone-else") is None


# -- reputation settlement ---------------------------------------------------


def test_merge_rewards_author_and_aligned_voters(db_session, workflow, translation, set_reputation) -> None:
    set_reputation("veteran", "es", 150)
    proposal = _propose(workflow, translation, required_quorum=2)

    workflow.vote_on_proposal(proposal.id, "newcomer", VOTE_DOWN)
    workflow.vote_on_proposal(proposal.id, "veteran", VOTE_UP)

    author = ReputationRepository(db_session).get("author", "es", fresh=True)
    assert author.rep_points == settings.author_merge_reward
    assert author.proposals_approved == 1
    assert author.translations_approved == 1
    assert _points(db_session, "veteran") == 150 + settings.voter_alignment_reward
    assert _points(db_session, "newcomer") == 0


def test_rejection_rewards_downvoters_only(db_session, workflow, translation) -> None:
    proposal = _propose(workflow, translation, required_quorum=2)

    workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)
    workflow.vote_on_proposal(proposal.id, "u2", VOTE_DOWN)

    assert _points(db_session, "author") == 0
    assert _points(db_session, "u1") == 0
    assert _points(db_session, "u2") == settings.voter_alignment_reward


def test_merge_writes_history(workflow, translation) -> None:
    proposal = _propose(workflow, translation, change_reason="Closer to the original")

    outcome = workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    history = TranslationRegistry(workflow.db).get_history(outcome.promoted_translation_id)
    assert len(history) == 1
    entry = history[0]
    assert entry.previous_translation_id == translation.id
    assert entry.proposal_id == proposal.id
    assert entry.previous_title == "Noche de paz"
    assert entry.changed_by == "author"
    assert entry.change_reason == "Closer to the original"


# -- concurrency -------------------------------------------------------------


def test_tally_conflict_is_retried(db_session, workflow, translation, monkeypatch) -> None:
    original = ProposalRepository.compare_and_set
    calls: list[int] = []

    def flaky(self, proposal_id, expected_version, **values):
        calls.append(proposal_id)
        if len(calls) == 1:
            return False
        return original(self, proposal_id, expected_version, **values)

    proposal = _propose(workflow, translation, required_quorum=2)
    monkeypatch.setattr(ProposalRepository, "compare_and_set", flaky)

    outcome = workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    assert len(calls) == 2
    assert outcome.vote_count == 1
    assert len(ProposalRepository(db_session).list_votes(proposal.id)) == 1
    db_session.refresh(proposal)
    assert (proposal.upvotes, proposal.vote_count) == (1, 1)


def test_persistent_tally_conflict_surfaces(db_session, workflow, translation, monkeypatch) -> None:
    proposal = _propose(workflow, translation)
    monkeypatch.setattr(ProposalRepository, "compare_and_set", lambda self, *a, **kw: False)

    with pytest.raises(ConflictError):
        workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    monkeypatch.undo()
    assert db_session.scalar(select(func.count()).select_from(ProposalVote)) == 0
    db_session.refresh(proposal)
    assert proposal.status == PROPOSAL_STATUS_PENDING
    assert proposal.vote_count == 0


def test_two_merges_keep_one_canonical_and_both_changes(db_session, workflow, translation) -> None:
    retitle = _propose(workflow, translation, new_title="Noche de luz")
    relyric = _propose(workflow, translation, new_title=None, new_lyrics=["Todo calla"])

    first = workflow.vote_on_proposal(retitle.id, "u1", VOTE_UP)
    second = workflow.vote_on_proposal(relyric.id, "u2", VOTE_UP)

    canonical = _canonical_rows(db_session, translation.carol_id, "es")
    assert len(canonical) == 1
    assert canonical[0].id == second.promoted_translation_id
    assert canonical[0].title == "Noche de luz"
    assert canonical[0].lyrics == ["Todo calla"]
    history = TranslationRegistry(db_session).get_history(second.promoted_translation_id)
    assert history[0].previous_translation_id == first.promoted_translation_id


def test_promotion_conflict_is_retried(db_session, workflow, translation, monkeypatch) -> None:
    original = TranslationRegistry.promote_translation
    attempts: list[str] = []

    def racing(self, **kwargs):
        attempts.append(kwargs["title"])
        if len(attempts) == 1:
            raise PromotionConflictError("canonical moved")
        return original(self, **kwargs)

    monkeypatch.setattr(TranslationRegistry, "promote_translation", racing)
    proposal = _propose(workflow, translation)

    outcome = workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    assert len(attempts) == 2
    assert outcome.status == PROPOSAL_STATUS_MERGED
    assert len(_canonical_rows(db_session, translation.carol_id, "es")) == 1


def test_unrecoverable_promotion_conflict_rolls_back_vote(db_session, workflow, translation, monkeypatch) -> None:
    def collide(self, **kwargs):
        conflict = PromotionConflictError("index says no")
        conflict.retryable = False
        raise conflict

    monkeypatch.setattr(TranslationRegistry, "promote_translation", collide)
    proposal = _propose(workflow, translation)

    with pytest.raises(PromotionConflictError):
        workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP)

    db_session.refresh(proposal)
    assert proposal.status == PROPOSAL_STATUS_PENDING
    assert workflow.get_user_vote(proposal.id, "u1") is None


# -- expiry ------------------------------------------------------------------


def test_expire_stale_proposals(db_session, workflow, translation) -> None:
    now = OPENED_AT + timedelta(days=10)
    stale = _propose(workflow, translation, now=OPENED_AT)
    fresh = _propose(workflow, translation, now=now - timedelta(days=1))

    assert workflow.expire_stale_proposals(now) == [stale.id]
    assert workflow.expire_stale_proposals(now) == []

    db_session.refresh(stale)
    db_session.refresh(fresh)
    assert stale.status == PROPOSAL_STATUS_REJECTED
    assert stale.resolved_at is not None
    assert fresh.status == PROPOSAL_STATUS_PENDING


def test_late_vote_counts_when_expiry_disabled(workflow, translation, monkeypatch) -> None:
    monkeypatch.setattr(settings, "proposal_expiry_enabled", False)
    proposal = _propose(workflow, translation, now=OPENED_AT)

    outcome = workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP, now=OPENED_AT + timedelta(days=30))

    assert outcome.status == PROPOSAL_STATUS_MERGED


def test_late_vote_expires_proposal_when_enabled(db_session, workflow, translation, monkeypatch) -> None:
    monkeypatch.setattr(settings, "proposal_expiry_enabled", True)
    proposal = _propose(workflow, translation, now=OPENED_AT)

    with pytest.raises(InvalidStateError):
        workflow.vote_on_proposal(proposal.id, "u1", VOTE_UP, now=OPENED_AT + timedelta(days=8))

    db_session.refresh(proposal)
    assert proposal.status == PROPOSAL_STATUS_REJECTED
    assert workflow.get_user_vote(proposal.id, "u1") is None

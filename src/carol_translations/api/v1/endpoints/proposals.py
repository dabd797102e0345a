"""Proposal and voting endpoints for the translation API."""

from fastapi import APIRouter, HTTPException, Query, status

from carol_translations.core.errors import DuplicateVoteError, TranslationEngineError
from carol_translations.models.proposal import VOTE_DOWN, VOTE_UP
from carol_translations.schemas.proposal import (
    MyVoteResponse,
    ProposalCreate,
    ProposalCreateResponse,
    ProposalDetailResponse,
    ProposalListResponse,
    ProposalResponse,
    VoteRequest,
    VoteResponse,
)
from carol_translations.services.proposals import ProposalWorkflow

from ..dependencies import CurrentUserDep, SessionDep, read_with_retry, to_http_exception

router = APIRouter(prefix="/proposals", tags=["proposals"])

_VOTE_VALUES = {"upvote": VOTE_UP, "downvote": VOTE_DOWN}


@router.post("", response_model=ProposalCreateResponse, status_code=status.HTTP_201_CREATED)
def create_proposal(
    payload: ProposalCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ProposalCreateResponse:
    """Open a proposal to edit a translation."""
    workflow = ProposalWorkflow(db)
    try:
        proposal = workflow.create_proposal(
            payload.translation_id,
            current_user,
            new_title=payload.new_title,
            new_lyrics=payload.new_lyrics,
            change_reason=payload.change_reason,
        )
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to create proposal") from err

    return ProposalCreateResponse(
        proposal=ProposalResponse.model_validate(proposal),
        message="Proposal created. Community will vote over the next 7 days.",
    )


@router.get("", response_model=ProposalListResponse)
def list_proposals(
    db: SessionDep,
    translation_id: int = Query(..., alias="translationId", description="Target translation"),
) -> ProposalListResponse:
    """List pending proposals for a translation, oldest first."""
    workflow = ProposalWorkflow(db)
    try:
        proposals = read_with_retry(db, lambda: workflow.get_pending_proposals(translation_id))
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch proposals") from err

    return ProposalListResponse(
        proposals=[ProposalResponse.model_validate(p) for p in proposals],
        count=len(proposals),
    )


@router.get("/{proposal_id}", response_model=ProposalDetailResponse)
def get_proposal(proposal_id: int, db: SessionDep) -> ProposalDetailResponse:
    """Return a single proposal with its current tallies."""
    workflow = ProposalWorkflow(db)
    try:
        proposal = read_with_retry(db, lambda: workflow.get_proposal(proposal_id))
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch proposal") from err
    return ProposalDetailResponse(proposal=ProposalResponse.model_validate(proposal))


@router.post("/{proposal_id}/vote", response_model=VoteResponse)
def vote_on_proposal(
    proposal_id: int,
    payload: VoteRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> VoteResponse:
    """Cast a reputation-weighted vote on a proposal.

    The write is never retried on a persistence failure, to avoid double counting.
    """
    workflow = ProposalWorkflow(db)
    try:
        outcome = workflow.vote_on_proposal(proposal_id, current_user, _VOTE_VALUES[payload.vote])
    except DuplicateVoteError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You have already voted on this proposal",
        ) from err
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to record vote") from err

    return VoteResponse(
        message=f"Your {payload.vote} has been recorded",
        vote=outcome.vote,
        weight=outcome.weight,
        status=outcome.status,
    )


@router.get("/{proposal_id}/my-vote", response_model=MyVoteResponse)
def get_my_vote(proposal_id: int, current_user: CurrentUserDep, db: SessionDep) -> MyVoteResponse:
    """Return the caller's vote on a proposal (0 if they have not voted)."""
    workflow = ProposalWorkflow(db)
    try:
        vote = workflow.get_user_vote(proposal_id, current_user)
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch vote") from err

    if vote is None:
        return MyVoteResponse(vote=0, weight=0)
    return MyVoteResponse(vote=vote.vote, weight=vote.weight)

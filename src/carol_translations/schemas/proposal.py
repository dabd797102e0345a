"""Proposal and vote Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import CamelModel


class ProposalCreate(CamelModel):
    """Schema for proposing an edit to a translation.

    At least one of ``new_title`` or ``new_lyrics`` must be supplied; that
    rule is enforced by the workflow so it reports a 400 like other input errors.
    """

    translation_id: int
    new_title: str | None = Field(None, max_length=500)
    new_lyrics: list[str] | None = Field(None, description="Replacement lyric lines")
    change_reason: str = Field(..., min_length=5, max_length=500)


class ProposalResponse(CamelModel):
    """Schema for proposal information returned by the API."""

    id: int
    translation_id: int
    proposed_by: str
    new_title: str | None
    new_lyrics: list[str] | None
    change_reason: str
    status: str
    upvotes: int
    downvotes: int
    vote_count: int
    required_quorum: int
    voting_ends_at: datetime
    created_at: datetime
    resolved_at: datetime | None


class ProposalCreateResponse(CamelModel):
    proposal: ProposalResponse
    message: str


class ProposalDetailResponse(CamelModel):
    proposal: ProposalResponse


class ProposalListResponse(CamelModel):
    proposals: list[ProposalResponse]
    count: int


class VoteRequest(CamelModel):
    """Schema for casting a vote on a proposal."""

    vote: Literal["upvote", "downvote"]


class VoteResponse(CamelModel):
    message: str
    vote: Literal[-1, 1]
    weight: int
    status: str


class MyVoteResponse(CamelModel):
    vote: Literal[-1, 0, 1] = Field(..., description="0 means no vote")
    weight: int = 0

"""Contributor reputation schemas."""

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class ReputationRequest(CamelModel):
    language: str = Field(..., min_length=1, max_length=10)


class ReputationResponse(CamelModel):
    """A contributor's standing in one language."""

    user_id: str
    language: str
    rep_points: int
    translations_approved: int
    proposals_approved: int
    is_moderator: bool
    updated_at: datetime


class MyReputationResponse(CamelModel):
    reputation: ReputationResponse
    voting_power: int


class LeaderboardResponse(CamelModel):
    language: str
    leaderboard: list[ReputationResponse]
    count: int

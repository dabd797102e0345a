"""Pydantic schemas for the translation API."""

from .proposal import (
    MyVoteResponse,
    ProposalCreate,
    ProposalCreateResponse,
    ProposalDetailResponse,
    ProposalListResponse,
    ProposalResponse,
    VoteRequest,
    VoteResponse,
)
from .reputation import (
    LeaderboardResponse,
    MyReputationResponse,
    ReputationRequest,
    ReputationResponse,
)
from .translation import (
    CanonicalTranslationResponse,
    TranslationCreate,
    TranslationCreateResponse,
    TranslationHistoryListResponse,
    TranslationHistoryResponse,
    TranslationListResponse,
    TranslationResponse,
)

__all__ = [
    "CanonicalTranslationResponse",
    "LeaderboardResponse",
    "MyReputationResponse",
    "MyVoteResponse",
    "ProposalCreate",
    "ProposalCreateResponse",
    "ProposalDetailResponse",
    "ProposalListResponse",
    "ProposalResponse",
    "ReputationRequest",
    "ReputationResponse",
    "TranslationCreate",
    "TranslationCreateResponse",
    "TranslationHistoryListResponse",
    "TranslationHistoryResponse",
    "TranslationListResponse",
    "TranslationResponse",
    "VoteRequest",
    "VoteResponse",
]

"""Business logic services for the translation engine."""

from .leaderboard import get_leaderboard
from .proposals import ProposalWorkflow, VoteOutcome
from .registry import TranslationDraft, TranslationPatch, TranslationRegistry
from .reputation import ReputationLedger, compute_voting_power

__all__ = [
    "ProposalWorkflow",
    "ReputationLedger",
    "TranslationDraft",
    "TranslationPatch",
    "TranslationRegistry",
    "VoteOutcome",
    "compute_voting_power",
    "get_leaderboard",
]

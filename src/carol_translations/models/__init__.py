"""SQLAlchemy models for the carol translation service."""

from .proposal import ProposalVote, TranslationProposal
from .reputation import ContributorReputation
from .translation import Translation, TranslationHistory

__all__ = [
    "ContributorReputation",
    "ProposalVote",
    "Translation",
    "TranslationHistory",
    "TranslationProposal",
]

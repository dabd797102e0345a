"""Persistence interface for translations, proposals, votes, and reputation."""

from .proposal_repo import ProposalRepository
from .reputation_repo import ReputationRepository
from .translation_repo import TranslationRepository

__all__ = ["ProposalRepository", "ReputationRepository", "TranslationRepository"]

"""Contributor reputation ledger."""
from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy.orm import Session

from carol_translations.core.settings import settings
from carol_translations.models import ContributorReputation
from carol_translations.repositories import ReputationRepository

logger = logging.getLogger(__name__)


def compute_voting_power(rep_points: int, step: int | None = None) -> int:
    """Return the vote multiplier for a reputation score.

    Every ``step`` points (100 by default) adds one to a base weight of 1.
    Negative inputs are treated as zero, so the result never drops below 1.
    """
    step = step or settings.voting_power_step
    return 1 + max(rep_points, 0) // step


class ReputationLedger:
    """Owns every mutation of contributor reputation points.

    Methods flush but never commit; the caller owns the transaction.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ReputationRepository(db)

    def get_or_create_reputation(self, user_id: str, language: str) -> ContributorReputation:
        """Fetch a user's reputation for a language, creating a zero row if absent."""
        return self.repo.ensure(user_id, language)

    def voting_power(self, user_id: str, language: str) -> int:
        """Resolve the current voting power of a user in a language."""
        reputation = self.get_or_create_reputation(user_id, language)
        return compute_voting_power(reputation.rep_points)

    def adjust_reputation(self, user_id: str, language: str, delta: int) -> ContributorReputation:
        """Apply ``delta`` points (clamped at zero) and return the updated row."""
        self.repo.increment(user_id, language, delta)
        logger.debug("Adjusted reputation of %s in %s by %d", user_id, language, delta)
        reputation = self.repo.get(user_id, language, fresh=True)
        assert reputation is not None
        return reputation

    def reward_author(self, user_id: str, language: str) -> None:
        """Credit a proposal author whose change became the canonical translation."""
        self.repo.increment(
            user_id,
            language,
            settings.author_merge_reward,
            proposals_approved=1,
            translations_approved=1,
        )

    def reward_voters(self, user_ids: Iterable[str], language: str) -> None:
        """Credit voters who sided with a proposal's final outcome."""
        if settings.voter_alignment_reward:
            self.repo.increment_many(user_ids, language, settings.voter_alignment_reward)

"""Contributor reputation and leaderboard endpoints."""

from fastapi import APIRouter, Query
from sqlalchemy.exc import SQLAlchemyError

from carol_translations.core.errors import StoreError, TranslationEngineError
from carol_translations.schemas.reputation import (
    LeaderboardResponse,
    MyReputationResponse,
    ReputationRequest,
    ReputationResponse,
)
from carol_translations.services.leaderboard import get_leaderboard
from carol_translations.services.reputation import ReputationLedger, compute_voting_power

from ..dependencies import CurrentUserDep, SessionDep, read_with_retry, to_http_exception

router = APIRouter(prefix="/contributors", tags=["contributors"])


@router.get("", response_model=LeaderboardResponse)
def leaderboard(
    db: SessionDep,
    language: str = Query("en", min_length=1, max_length=10),
    limit: int = Query(10, description="Number of contributors, capped at 100"),
) -> LeaderboardResponse:
    """Return the reputation leaderboard for a language."""
    try:
        rows = read_with_retry(db, lambda: get_leaderboard(db, language, limit))
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch leaderboard") from err

    return LeaderboardResponse(
        language=language,
        leaderboard=[ReputationResponse.model_validate(row) for row in rows],
        count=len(rows),
    )


@router.post("", response_model=MyReputationResponse)
def my_reputation(
    payload: ReputationRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MyReputationResponse:
    """Return the caller's reputation in a language, creating a zero record if needed."""
    ledger = ReputationLedger(db)
    try:
        reputation = ledger.get_or_create_reputation(current_user, payload.language)
        db.commit()
    except TranslationEngineError as err:
        db.rollback()
        raise to_http_exception(err, "Failed to fetch reputation") from err
    except SQLAlchemyError as err:
        db.rollback()
        raise to_http_exception(StoreError(), "Failed to fetch reputation") from err

    return MyReputationResponse(
        reputation=ReputationResponse.model_validate(reputation),
        voting_power=compute_voting_power(reputation.rep_points),
    )

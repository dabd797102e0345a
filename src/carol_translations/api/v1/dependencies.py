"""Shared API dependencies for authentication, sessions, and error mapping."""

import logging
from collections.abc import Callable
from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from carol_translations.core.errors import StoreError, TranslationEngineError
from carol_translations.core.security import InvalidTokenError, decode_user_id
from carol_translations.db.session import get_db

logger = logging.getLogger(__name__)

T = TypeVar("T")

# auto_error is off so a missing header is a 401 rather than FastAPI's default.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Return the authenticated user id from the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized - authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_user_id(credentials.credentials)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


# Type alias for current user dependency
CurrentUserDep = Annotated[str, Depends(get_current_user_id)]


def to_http_exception(err: TranslationEngineError, fallback_detail: str) -> HTTPException:
    """Map a domain error onto an HTTP error.

    Persistence failures become an opaque 500 carrying ``fallback_detail``.
    """
    if isinstance(err, StoreError) or err.status_code >= 500:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=fallback_detail,
        )
    return HTTPException(status_code=err.status_code, detail=str(err))


def read_with_retry(db: Session, read: Callable[[], T]) -> T:
    """Run an idempotent read, retrying once after a :class:`StoreError`."""
    try:
        return read()
    except StoreError:
        logger.warning("Read failed, retrying once", exc_info=True)
        db.rollback()
        return read()

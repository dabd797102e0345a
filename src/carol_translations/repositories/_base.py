"""Shared plumbing for the SQLAlchemy repositories."""
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carol_translations.core.errors import StoreError, TranslationEngineError

logger = logging.getLogger(__name__)


class BaseRepository:
    """Base class holding the request-scoped session."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    @property
    def dialect_name(self) -> str:
        """Return the name of the dialect the session is bound to."""
        return self.session.get_bind().dialect.name


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Convert unexpected SQLAlchemy failures into :class:`StoreError`.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except TranslationEngineError:
        raise
    except SQLAlchemyError as exc:
        logger.error("Persistence failure while trying to %s", action, exc_info=True)
        raise StoreError(f"Failed to {action}") from exc

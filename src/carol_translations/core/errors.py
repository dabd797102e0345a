"""Exception taxonomy for the translation engine.

Every failure the engine reports to its callers derives from
:class:`TranslationEngineError`. The API layer maps ``status_code`` onto the
HTTP response; persistence details never leave :class:`StoreError`.
"""

from __future__ import annotations


class TranslationEngineError(RuntimeError):
    """Base exception for all translation engine failures."""

    code = "engine_error"
    status_code = 500


class ValidationError(TranslationEngineError):
    """Raised when input is malformed or missing before any persistence call."""

    code = "validation_error"
    status_code = 400


class NotFoundError(TranslationEngineError):
    """Raised when a translation or proposal does not exist."""

    code = "not_found"
    status_code = 404


class InvalidStateError(TranslationEngineError):
    """Raised when voting on a proposal that is no longer pending."""

    code = "invalid_state"
    status_code = 409


class DuplicateVoteError(TranslationEngineError):
    """Raised when a user tries to vote a second time on the same proposal."""

    code = "duplicate_vote"
    status_code = 409

    def __init__(self, message: str = "User has already voted on this proposal") -> None:
        super().__init__(message)


class ConflictError(TranslationEngineError):
    """Raised when concurrent writers kept winning an optimistic update."""

    code = "conflict"
    status_code = 409


class PromotionConflictError(ConflictError):
    """Raised when a canonical translation changed underneath a promotion."""

    code = "promotion_conflict"
    # False once the session has to be rolled back before anything else runs.
    retryable = True


class StoreError(TranslationEngineError):
    """Raised when the persistence layer fails unexpectedly."""

    code = "store_error"
    status_code = 500


__all__ = [
    "ConflictError",
    "DuplicateVoteError",
    "InvalidStateError",
    "NotFoundError",
    "PromotionConflictError",
    "StoreError",
    "TranslationEngineError",
    "ValidationError",
]

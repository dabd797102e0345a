"""Canonical translation registry.

The registry is the only component that moves the ``is_canonical`` flag.
Promotions are compare-and-swap operations keyed on the previous canonical
row's id and version, backed by a partial unique index in the database.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from carol_translations.core.errors import (
    NotFoundError,
    PromotionConflictError,
    StoreError,
    ValidationError,
)
from carol_translations.models import Translation, TranslationHistory
from carol_translations.models.translation import (
    SOURCE_AI_GENERATED,
    SOURCE_COMMUNITY,
    TRANSLATION_SOURCES,
)
from carol_translations.repositories import TranslationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationPatch:
    """Partial update to a translation.

    A field set on the patch wins; a field left as ``None`` keeps the value
    of the translation the patch is applied to.
    """

    title: str | None = None
    lyrics: tuple[str, ...] | None = None

    @classmethod
    def from_proposal(cls, new_title: str | None, new_lyrics: Sequence[str] | None) -> TranslationPatch:
        return cls(
            title=new_title,
            lyrics=tuple(new_lyrics) if new_lyrics is not None else None,
        )

    @property
    def is_empty(self) -> bool:
        return self.title is None and self.lyrics is None

    def apply_to(self, base: Translation) -> tuple[str, list[str]]:
        """Return the (title, lyrics) produced by applying the patch to ``base``."""
        title = self.title if self.title is not None else base.title
        lyrics = list(self.lyrics) if self.lyrics is not None else list(base.lyrics or [])
        return title, lyrics


@dataclass(frozen=True)
class TranslationDraft:
    """Values for a translation that is about to be stored."""

    title: str
    lyrics: tuple[str, ...]
    source: str = SOURCE_AI_GENERATED
    created_by: str | None = None


class TranslationRegistry:
    """Manages which translation is canonical for each (carol, language) pair."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = TranslationRepository(db)

    def get_translation(self, translation_id: int) -> Translation:
        """Return a translation or raise :class:`NotFoundError`."""
        translation = self.repo.get(translation_id)
        if translation is None:
            raise NotFoundError("Translation not found")
        return translation

    def get_canonical_translation(
        self, carol_id: str, language: str, *, fresh: bool = False
    ) -> Translation | None:
        """Return the canonical translation for a pair, or None."""
        return self.repo.get_canonical(carol_id, language, fresh=fresh)

    def get_translations_for_carol(self, carol_id: str, language: str) -> list[Translation]:
        """Return canonical and superseded versions, most upvoted first."""
        return self.repo.list_for_carol(carol_id, language)

    def get_history(self, translation_id: int) -> list[TranslationHistory]:
        """Return merge history touching a translation, newest first."""
        self.get_translation(translation_id)
        return self.repo.list_history(translation_id)

    def get_or_create_translation(
        self, carol_id: str, language: str, draft: TranslationDraft
    ) -> tuple[Translation, bool]:
        """Return the canonical translation, inserting ``draft`` as canonical if none exists.

        This is a unit of work of its own and commits. Returns the translation
        and whether it was created by this call.
        """
        if draft.source not in TRANSLATION_SOURCES:
            raise ValidationError(f"Unknown translation source: {draft.source}")
        if not draft.title.strip():
            raise ValidationError("Translation title must not be empty")

        existing = self.repo.get_canonical(carol_id, language)
        if existing is not None:
            return existing, False

        try:
            created = self.repo.add(
                carol_id=carol_id,
                language=language,
                title=draft.title,
                lyrics=draft.lyrics,
                source=draft.source,
                created_by=draft.created_by,
                is_canonical=True,
            )
            self.db.commit()
        except IntegrityError:
            # Another request seeded the pair first; theirs is canonical.
            self.db.rollback()
            winner = self.repo.get_canonical(carol_id, language, fresh=True)
            if winner is None:
                raise StoreError("Failed to create translation") from None
            return winner, False
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Failed to create translation for %s/%s", carol_id, language, exc_info=True)
            raise StoreError("Failed to create translation") from exc

        logger.info(
            "Seeded canonical %s translation %s for carol %s",
            language,
            created.id,
            carol_id,
        )
        return created, True

    def promote_translation(
        self,
        *,
        carol_id: str,
        language: str,
        title: str,
        lyrics: Sequence[str],
        created_by: str | None,
        previous: Translation | None,
    ) -> Translation:
        """Replace ``previous`` with a new canonical row inside the caller's transaction.

        ``previous`` must be the canonical row as the caller last observed it.
        If it is no longer canonical at that version the swap is refused with
        a retryable :class:`PromotionConflictError` and nothing is written.
        """
        if previous is not None and not self.repo.retire_canonical(previous.id, previous.version):
            raise PromotionConflictError(
                f"Canonical translation {previous.id} changed during promotion"
            )
        if previous is not None:
            self.db.expire(previous, ["is_canonical", "version"])
        try:
            promoted = self.repo.add(
                carol_id=carol_id,
                language=language,
                title=title,
                lyrics=lyrics,
                source=SOURCE_COMMUNITY,
                created_by=created_by,
                is_canonical=True,
            )
        except IntegrityError as exc:
            conflict = PromotionConflictError(
                f"Another canonical {language} translation exists for carol {carol_id}"
            )
            conflict.retryable = False
            raise conflict from exc
        except SQLAlchemyError as exc:
            logger.error("Failed to promote translation for %s/%s", carol_id, language, exc_info=True)
            raise StoreError("Failed to promote translation") from exc

        logger.info(
            "Promoted translation %s to canonical for carol %s (%s), replacing %s",
            promoted.id,
            carol_id,
            language,
            previous.id if previous is not None else None,
        )
        return promoted

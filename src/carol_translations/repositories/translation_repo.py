"""Data access helpers for carol translations and their history."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select, update

from carol_translations.models import Translation, TranslationHistory

from ._base import BaseRepository, store_errors

__all__ = ["TranslationRepository"]


class TranslationRepository(BaseRepository):
    """Thin wrapper around database access for translation rows."""

    def get(self, translation_id: int, *, fresh: bool = False) -> Translation | None:
        """Return a translation by identifier.

        ``fresh`` bypasses the identity map so concurrent commits are observed.
        """
        with store_errors("load translation"):
            return self.session.get(Translation, translation_id, populate_existing=fresh)

    def get_canonical(
        self, carol_id: str, language: str, *, fresh: bool = False
    ) -> Translation | None:
        """Return the canonical translation for a (carol, language) pair."""
        stmt = select(Translation).where(
            Translation.carol_id == carol_id,
            Translation.language == language,
            Translation.is_canonical.is_(True),
        )
        if fresh:
            stmt = stmt.execution_options(populate_existing=True)
        with store_errors("load canonical translation"):
            return self.session.scalars(stmt.limit(1)).first()

    def list_for_carol(self, carol_id: str, language: str) -> list[Translation]:
        """Return every version for a pair, most upvoted first."""
        stmt = (
            select(Translation)
            .where(Translation.carol_id == carol_id, Translation.language == language)
            .order_by(
                Translation.upvotes.desc(),
                Translation.created_at.desc(),
                Translation.id.desc(),
            )
        )
        with store_errors("list translations"):
            return list(self.session.scalars(stmt))

    def add(
        self,
        *,
        carol_id: str,
        language: str,
        title: str,
        lyrics: Sequence[str],
        source: str,
        created_by: str | None,
        is_canonical: bool,
    ) -> Translation:
        """Insert a translation row and flush it so the id is assigned.

        An ``IntegrityError`` from the canonical uniqueness index propagates
        to the caller, which decides how to reconcile.
        """
        translation = Translation(
            carol_id=carol_id,
            language=language,
            title=title,
            lyrics=list(lyrics),
            source=source,
            created_by=created_by,
            is_canonical=is_canonical,
            upvotes=0,
            downvotes=0,
            version=1,
        )
        self.session.add(translation)
        self.session.flush()
        return translation

    def retire_canonical(self, translation_id: int, expected_version: int) -> bool:
        """Clear the canonical flag if the row is still at ``expected_version``.

        Returns False when another writer already flipped or touched the row.
        """
        stmt = (
            update(Translation)
            .where(
                Translation.id == translation_id,
                Translation.is_canonical.is_(True),
                Translation.version == expected_version,
            )
            .values(is_canonical=False, version=Translation.version + 1)
            .execution_options(synchronize_session=False)
        )
        with store_errors("retire canonical translation"):
            result = self.session.execute(stmt)
        return result.rowcount == 1

    def add_history(
        self,
        *,
        translation_id: int,
        previous: Translation,
        proposal_id: int,
        changed_by: str,
        change_reason: str,
    ) -> TranslationHistory:
        """Record the translation a merge replaced."""
        entry = TranslationHistory(
            translation_id=translation_id,
            previous_translation_id=previous.id,
            proposal_id=proposal_id,
            previous_title=previous.title,
            previous_lyrics=list(previous.lyrics or []),
            changed_by=changed_by,
            change_reason=change_reason,
        )
        with store_errors("record translation history"):
            self.session.add(entry)
            self.session.flush()
        return entry

    def list_history(self, translation_id: int) -> list[TranslationHistory]:
        """Return merges that replaced or produced a translation, newest first."""
        stmt = (
            select(TranslationHistory)
            .where(
                (TranslationHistory.translation_id == translation_id)
                | (TranslationHistory.previous_translation_id == translation_id)
            )
            .order_by(TranslationHistory.changed_at.desc(), TranslationHistory.id.desc())
        )
        with store_errors("list translation history"):
            return list(self.session.scalars(stmt))

"""Translation-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from .common import CamelModel


class TranslationCreate(CamelModel):
    """Schema for seeding a translation of a carol."""

    carol_id: str = Field(..., min_length=1, max_length=64)
    language: str = Field(..., min_length=1, max_length=10)
    title: str = Field(..., min_length=1, max_length=500)
    lyrics: list[str] = Field(default_factory=list, description="Ordered lyric lines")
    source: Literal["ai_generated", "community"] = "ai_generated"


class TranslationResponse(CamelModel):
    """Schema for translation information returned by the API."""

    id: int
    carol_id: str
    language: str
    title: str
    lyrics: list[str]
    source: str
    is_canonical: bool
    created_by: str | None
    upvotes: int
    downvotes: int
    created_at: datetime


class TranslationCreateResponse(CamelModel):
    translation: TranslationResponse
    created: bool


class CanonicalTranslationResponse(CamelModel):
    translation: TranslationResponse


class TranslationListResponse(CamelModel):
    translations: list[TranslationResponse]
    count: int


class TranslationHistoryResponse(CamelModel):
    """One merge that replaced a canonical translation."""

    id: int
    translation_id: int
    previous_translation_id: int
    proposal_id: int
    previous_title: str
    previous_lyrics: list[str]
    changed_by: str
    change_reason: str
    changed_at: datetime


class TranslationHistoryListResponse(CamelModel):
    history: list[TranslationHistoryResponse]
    count: int

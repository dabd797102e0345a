"""Translation lookup, seeding, and history endpoints."""

from fastapi import APIRouter, Query, Response, status

from carol_translations.core.errors import NotFoundError, TranslationEngineError
from carol_translations.schemas.translation import (
    CanonicalTranslationResponse,
    TranslationCreate,
    TranslationCreateResponse,
    TranslationHistoryListResponse,
    TranslationHistoryResponse,
    TranslationListResponse,
    TranslationResponse,
)
from carol_translations.services.registry import TranslationDraft, TranslationRegistry

from ..dependencies import CurrentUserDep, SessionDep, read_with_retry, to_http_exception

router = APIRouter(tags=["translations"])


@router.get("", response_model=TranslationListResponse)
def list_translations(
    db: SessionDep,
    carol_id: str = Query(..., alias="carolId", min_length=1),
    language: str = Query(..., min_length=1, max_length=10),
) -> TranslationListResponse:
    """List every version of a carol's translation, most upvoted first."""
    registry = TranslationRegistry(db)
    try:
        rows = read_with_retry(db, lambda: registry.get_translations_for_carol(carol_id, language))
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch translations") from err
    return TranslationListResponse(
        translations=[TranslationResponse.model_validate(row) for row in rows],
        count=len(rows),
    )


@router.get("/canonical", response_model=CanonicalTranslationResponse)
def get_canonical(
    db: SessionDep,
    carol_id: str = Query(..., alias="carolId", min_length=1),
    language: str = Query(..., min_length=1, max_length=10),
) -> CanonicalTranslationResponse:
    """Return the canonical translation for a carol and language."""
    registry = TranslationRegistry(db)
    try:
        translation = read_with_retry(
            db, lambda: registry.get_canonical_translation(carol_id, language)
        )
        if translation is None:
            raise NotFoundError("Translation not found")
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch translation") from err
    return CanonicalTranslationResponse(translation=TranslationResponse.model_validate(translation))


@router.post("", response_model=TranslationCreateResponse, status_code=status.HTTP_201_CREATED)
def seed_translation(
    payload: TranslationCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    response: Response,
) -> TranslationCreateResponse:
    """Store a translation as canonical unless one already exists."""
    registry = TranslationRegistry(db)
    draft = TranslationDraft(
        title=payload.title,
        lyrics=tuple(payload.lyrics),
        source=payload.source,
        created_by=current_user,
    )
    try:
        translation, created = registry.get_or_create_translation(
            payload.carol_id, payload.language, draft
        )
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to store translation") from err

    if not created:
        response.status_code = status.HTTP_200_OK
    return TranslationCreateResponse(
        translation=TranslationResponse.model_validate(translation),
        created=created,
    )


@router.get("/{translation_id}/history", response_model=TranslationHistoryListResponse)
def translation_history(translation_id: int, db: SessionDep) -> TranslationHistoryListResponse:
    """Return the merges that produced or replaced a translation."""
    registry = TranslationRegistry(db)
    try:
        entries = read_with_retry(db, lambda: registry.get_history(translation_id))
    except TranslationEngineError as err:
        raise to_http_exception(err, "Failed to fetch translation history") from err
    return TranslationHistoryListResponse(
        history=[TranslationHistoryResponse.model_validate(e) for e in entries],
        count=len(entries),
    )

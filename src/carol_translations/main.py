"""Main entry point for the carol translation service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from carol_translations import __version__
from carol_translations.api.v1 import contributors_router, proposals_router, translations_router
from carol_translations.core.settings import settings
from carol_translations.services.expiry import ProposalExpiryWorker

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Set the root log level from settings once per process."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    worker: ProposalExpiryWorker | None = None
    if settings.proposal_expiry_enabled:
        worker = ProposalExpiryWorker()
        await worker.start()
        logger.info("Proposal expiry sweep running every %.0fs", worker.interval)
    app.state.expiry_worker = worker
    try:
        yield
    finally:
        if worker is not None:
            await worker.stop()


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Community translation proposals, voting, and reputation for carols",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers; the catch-all translations router goes last
app.include_router(proposals_router, prefix="/api/translations")
app.include_router(contributors_router, prefix="/api/translations")
app.include_router(translations_router, prefix="/api/translations")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed input as 400 with the offending fields."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid input", "errors": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("carol_translations.main:app", host="0.0.0.0", port=8000, reload=settings.debug)

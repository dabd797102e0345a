"""Version 1 API endpoints."""

from .endpoints import contributors_router, proposals_router, translations_router

__all__ = ["contributors_router", "proposals_router", "translations_router"]

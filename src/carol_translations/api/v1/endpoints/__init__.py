"""API endpoint modules for version 1."""

from .contributors import router as contributors_router
from .proposals import router as proposals_router
from .translations import router as translations_router

__all__ = ["contributors_router", "proposals_router", "translations_router"]

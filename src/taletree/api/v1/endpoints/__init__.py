# src/taletree/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .stories import router as stories_router
from .units import router as units_router
from .votes import router as votes_router

__all__ = [
    "stories_router",
    "units_router",
    "votes_router",
]

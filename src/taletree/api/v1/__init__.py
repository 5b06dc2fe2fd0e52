# src/taletree/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import stories_router, units_router, votes_router

__all__ = [
    "stories_router",
    "units_router",
    "votes_router",
]

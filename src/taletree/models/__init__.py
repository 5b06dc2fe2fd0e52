# src/taletree/models/__init__.py
"""SQLAlchemy models for the Taletree application."""

from .comment import UnitComment
from .story import Story
from .unit import StoryUnit
from .vote import UnitVote

__all__ = [
    "Story",
    "StoryUnit",
    "UnitComment",
    "UnitVote",
]

# src/taletree/services/__init__.py
"""Business logic services for the Taletree application."""

from .assembler import TreeAssembler
from .branches import BranchService
from .comments import CommentThread
from .story_service import StoryService
from .votes import VoteLedger

__all__ = [
    "BranchService",
    "CommentThread",
    "StoryService",
    "TreeAssembler",
    "VoteLedger",
]

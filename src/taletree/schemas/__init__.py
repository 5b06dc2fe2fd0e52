"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .comment import CommentCreate, CommentResponse
from .story import AggregateAudit, StoryCreate, StoryCreated, StoryResponse, StoryUpdate
from .unit import BranchCreate, TreeResponse, UnitResponse
from .vote import MyVoteResponse, VoteCreate, VoteResponse

__all__ = [
    "AggregateAudit",
    "BranchCreate",
    "CommentCreate", "CommentResponse",
    "MyVoteResponse",
    "StoryCreate", "StoryCreated", "StoryResponse", "StoryUpdate",
    "TreeResponse",
    "UnitResponse",
    "VoteCreate", "VoteResponse",
]

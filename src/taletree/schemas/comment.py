"""Comment-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    """Schema for adding a comment to a unit."""

    body: str
    reply_to: str | None = Field(None, description="Id of an earlier comment on the same unit")


class CommentResponse(BaseModel):
    id: str
    unit_id: str
    tree_id: str
    author_id: str
    body: str
    reply_to: str | None
    depth: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

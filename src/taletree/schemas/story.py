"""Story-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoryCreate(BaseModel):
    """Schema for creating a story together with its root unit."""

    body: str = Field(..., description="Content of the root unit")
    title: str = Field("", max_length=500, description="Story title")
    category: str | None = Field(None, description="Free-form category")
    tags: list[str] | str | None = Field(None, description="Tags, as a list or comma-separated")
    status: Literal["draft", "published"] = "published"


class StoryCreated(BaseModel):
    """Identifiers returned after story creation."""

    tree_id: str
    root_unit_id: str


class StoryUpdate(BaseModel):
    """Author-only story changes; omitted fields are left alone."""

    is_locked: bool | None = None
    publish: bool | None = Field(None, description="Set true to publish a draft")
    canonical_unit_id: str | None = Field(
        None,
        description="Unit to mark as canonical branch; send null to clear",
    )


class StoryResponse(BaseModel):
    """Schema for story information returned by the API."""

    id: str
    author_id: str
    title: str
    category: str | None
    tags: list[str]
    status: str
    is_locked: bool
    root_unit_id: str
    canonical_unit_id: str | None
    excerpt: str
    branch_count: int
    total_comment_count: int
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _enum_value(cls, value: object) -> object:
        return getattr(value, "value", value)

    model_config = ConfigDict(from_attributes=True)


class AggregateAudit(BaseModel):
    """Stored story counters against a fresh recount."""

    tree_id: str
    branch_count: int
    counted_units: int
    total_comment_count: int
    summed_comments: int
    consistent: bool

    model_config = ConfigDict(from_attributes=True)

"""Unit and traversal Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BranchCreate(BaseModel):
    """Schema for attaching a new unit beneath an existing one."""

    parent_unit_id: str = Field(..., min_length=1)
    body: str


class UnitResponse(BaseModel):
    """Schema for unit information returned by the API."""

    id: str
    tree_id: str
    parent_id: str | None
    author_id: str
    body: str
    sequence_key: int
    upvotes: int
    downvotes: int
    comment_count: int
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def _flatten_tally(cls, data: object) -> object:
        if not isinstance(data, dict):
            extracted: dict[str, object | None] = {}
            for field_name in cls.model_fields:
                extracted[field_name] = getattr(data, field_name, None)
            tally = getattr(data, "tally", None)
            if tally is not None:
                extracted["upvotes"] = tally.up
                extracted["downvotes"] = tally.down
            data = extracted
        return data

    model_config = ConfigDict(from_attributes=True)


class TraversalEntryResponse(BaseModel):
    depth: int
    position: int
    unit: UnitResponse

    model_config = ConfigDict(from_attributes=True)


class AnomalyResponse(BaseModel):
    kind: str
    unit_id: str | None
    parent_id: str | None
    detail: str

    @field_validator("kind", mode="before")
    @classmethod
    def _enum_value(cls, value: object) -> object:
        return getattr(value, "value", value)

    model_config = ConfigDict(from_attributes=True)


class TreeResponse(BaseModel):
    """One page of a story's reading order."""

    tree_id: str
    total: int
    entries: list[TraversalEntryResponse]
    anomalies: list[AnomalyResponse]
    next_cursor: str | None = Field(
        None,
        description="Pass as ?after= to continue; null on the last page.",
    )

"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    unit_id: str = Field(..., min_length=1)
    direction: Literal["up", "down"] = Field(..., description="Casting the held vote withdraws it")


class VoteResponse(BaseModel):
    """Tally after a cast, plus the caller's standing vote."""

    unit_id: str
    upvotes: int
    downvotes: int
    direction: Literal["up", "down"] | None


class MyVoteResponse(BaseModel):
    direction: Literal["up", "down"] | None

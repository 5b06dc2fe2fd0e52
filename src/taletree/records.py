"""Immutable snapshots of stored entities.

Stores hand these out and accept them back; nothing outside a store ever sees
an ORM row. Each versioned record carries the ``version`` it was read at,
which is the token a conditional write is checked against.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


class VoteDirection(str, Enum):
    """Direction of a single vote."""

    UP = "up"
    DOWN = "down"

    @property
    def opposite(self) -> VoteDirection:
        return VoteDirection.DOWN if self is VoteDirection.UP else VoteDirection.UP


class StoryStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass(frozen=True, slots=True)
class VoteTally:
    """Cached up/down counts for a unit. Never negative."""

    up: int = 0
    down: int = 0

    @property
    def score(self) -> int:
        return self.up - self.down

    def bump(self, direction: VoteDirection, delta: int) -> VoteTally:
        """Return a tally with ``delta`` applied to one side, floored at zero."""
        if direction is VoteDirection.UP:
            return VoteTally(up=max(0, self.up + delta), down=self.down)
        return VoteTally(up=self.up, down=max(0, self.down + delta))


@dataclass(frozen=True, slots=True)
class VoteRecord:
    """One voter's standing vote on one unit."""

    unit_id: str
    voter_id: str
    direction: VoteDirection


@dataclass(frozen=True, slots=True)
class ContentUnit:
    id: str
    tree_id: str
    parent_id: str | None
    author_id: str
    body: str
    sequence_key: int
    created_at: datetime
    updated_at: datetime
    tally: VoteTally = field(default_factory=VoteTally)
    comment_count: int = 0
    version: int = 1

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True, slots=True)
class TreeRoot:
    """The owning story of a tree, with its denormalized aggregates."""

    id: str
    author_id: str
    root_unit_id: str
    created_at: datetime
    updated_at: datetime
    title: str = ""
    category: str | None = None
    tags: tuple[str, ...] = ()
    status: StoryStatus = StoryStatus.PUBLISHED
    is_locked: bool = False
    canonical_unit_id: str | None = None
    excerpt: str = ""
    branch_count: int = 0
    total_comment_count: int = 0
    version: int = 1


@dataclass(frozen=True, slots=True)
class Comment:
    id: str
    unit_id: str
    tree_id: str
    author_id: str
    body: str
    sequence_key: int
    created_at: datetime
    reply_to: str | None = None
    depth: int = 0

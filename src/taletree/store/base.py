"""Node store contract.

A store persists trees, units, vote records and comments, and applies
changesets atomically. Updates are conditional: each updated record carries
the ``version`` it was read at, and the whole changeset is rejected with
``ConflictError`` if any stored version has moved since. Inserts that collide
with an existing key (id or sibling ``sequence_key``) are rejected the same
way so the caller can retry with fresh values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from taletree.records import Comment, ContentUnit, TreeRoot, VoteRecord

T = TypeVar("T")
K = TypeVar("K")

UnitKey = tuple[int, str]
CommentKey = tuple[datetime, int]


def unit_key(unit: ContentUnit) -> UnitKey:
    """Sort key for units: chronological, with id as a stable tiebreak."""
    return (unit.sequence_key, unit.id)


def comment_key(comment: Comment) -> CommentKey:
    """Sort key for comments: creation time, then insertion order."""
    return (comment.created_at, comment.sequence_key)


class Paged(Generic[T, K]):
    """Finite, lazily fetched sequence that restarts from the top on each iteration.

    ``fetch(after, limit)`` returns up to ``limit`` items strictly after the
    keyset cursor ``after`` (``None`` for the first page).
    """

    def __init__(
        self,
        fetch: Callable[[K | None, int], list[T]],
        key: Callable[[T], K],
        page_size: int,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._fetch = fetch
        self._key = key
        self._page_size = page_size

    def __iter__(self) -> Iterator[T]:
        after: K | None = None
        while True:
            page = self._fetch(after, self._page_size)
            yield from page
            if len(page) < self._page_size:
                return
            after = self._key(page[-1])


@dataclass
class ChangeSet:
    """Everything one optimistic transaction wants to write.

    Updated records keep the version they were read at; the store checks it
    and persists ``version + 1``.
    """

    new_trees: list[TreeRoot] = field(default_factory=list)
    new_units: list[ContentUnit] = field(default_factory=list)
    new_comments: list[Comment] = field(default_factory=list)
    unit_updates: list[ContentUnit] = field(default_factory=list)
    tree_updates: list[TreeRoot] = field(default_factory=list)
    vote_puts: list[VoteRecord] = field(default_factory=list)
    vote_deletes: list[tuple[str, str]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.new_trees
            or self.new_units
            or self.new_comments
            or self.unit_updates
            or self.tree_updates
            or self.vote_puts
            or self.vote_deletes
        )


class NodeStore(ABC):
    """Abstract base class for node storage implementations."""

    def __init__(self, page_size: int = 200) -> None:
        self.page_size = page_size

    # ═══════════════════════════════════════════════════════════
    # POINT READS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def get_tree(self, tree_id: str) -> TreeRoot | None:
        """Return the tree root, or None if absent."""

    @abstractmethod
    def get_unit(self, unit_id: str) -> ContentUnit | None:
        """Return the unit, or None if absent."""

    @abstractmethod
    def get_comment(self, comment_id: str) -> Comment | None:
        """Return the comment, or None if absent."""

    @abstractmethod
    def get_vote(self, unit_id: str, voter_id: str) -> VoteRecord | None:
        """Return the voter's standing vote on the unit, if any."""

    # ═══════════════════════════════════════════════════════════
    # COLLECTION READS
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def children_of(self, unit_id: str) -> list[ContentUnit]:
        """Return the direct children of a unit ordered by ``sequence_key``."""

    @abstractmethod
    def votes_for(self, unit_id: str) -> list[VoteRecord]:
        """Return every standing vote on a unit ordered by voter id."""

    @abstractmethod
    def _unit_page(self, tree_id: str, after: UnitKey | None, limit: int) -> list[ContentUnit]:
        """Return one keyset page of a tree's units."""

    @abstractmethod
    def _comment_page(
        self, unit_id: str, after: CommentKey | None, limit: int
    ) -> list[Comment]:
        """Return one keyset page of a unit's comments."""

    def units_in_tree(
        self, tree_id: str, page_size: int | None = None
    ) -> Paged[ContentUnit, UnitKey]:
        """Return every unit of a tree as a lazily paged, restartable sequence."""
        return Paged(
            lambda after, limit: self._unit_page(tree_id, after, limit),
            unit_key,
            page_size or self.page_size,
        )

    def comments_for(
        self, unit_id: str, page_size: int | None = None
    ) -> Paged[Comment, CommentKey]:
        """Return a unit's comments oldest first as a lazily paged, restartable sequence."""
        return Paged(
            lambda after, limit: self._comment_page(unit_id, after, limit),
            comment_key,
            page_size or self.page_size,
        )

    # ═══════════════════════════════════════════════════════════
    # WRITES
    # ═══════════════════════════════════════════════════════════

    @abstractmethod
    def commit(self, changes: ChangeSet) -> None:
        """Apply a changeset atomically.

        Raises:
            ConflictError: If an updated record's stored version differs from
                the one it was read at, or an insert collides with an existing
                key. Nothing is written in that case.
        """

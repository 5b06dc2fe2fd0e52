"""In-process node store.

Holds immutable records in dictionaries. Only the commit step and index scans
take the store lock; it stands in for the storage engine's own atomicity and
is never held across a caller's read-compute-write cycle.
"""

from __future__ import annotations

from bisect import bisect_right, insort
from collections import defaultdict
from dataclasses import replace
from threading import Lock

from taletree.core.errors import ConflictError
from taletree.db.time import utcnow
from taletree.records import Comment, ContentUnit, TreeRoot, VoteRecord
from taletree.store.base import (
    ChangeSet,
    CommentKey,
    NodeStore,
    UnitKey,
    comment_key,
    unit_key,
)


class MemoryNodeStore(NodeStore):
    """Dictionary-backed store with the same conditional-write semantics as SQL."""

    def __init__(self, page_size: int = 200) -> None:
        super().__init__(page_size)
        self._lock = Lock()
        self._trees: dict[str, TreeRoot] = {}
        self._units: dict[str, ContentUnit] = {}
        self._comments: dict[str, Comment] = {}
        self._votes: dict[tuple[str, str], VoteRecord] = {}
        # Unit and comment ids per tree and thread, kept in page order.
        self._tree_units: defaultdict[str, list[str]] = defaultdict(list)
        self._children: defaultdict[str, list[str]] = defaultdict(list)
        self._threads: defaultdict[str, list[str]] = defaultdict(list)
        self._sibling_keys: set[tuple[str, int]] = set()
        self._thread_keys: set[tuple[str, int]] = set()

    def get_tree(self, tree_id: str) -> TreeRoot | None:
        return self._trees.get(tree_id)

    def get_unit(self, unit_id: str) -> ContentUnit | None:
        return self._units.get(unit_id)

    def get_comment(self, comment_id: str) -> Comment | None:
        return self._comments.get(comment_id)

    def get_vote(self, unit_id: str, voter_id: str) -> VoteRecord | None:
        return self._votes.get((unit_id, voter_id))

    def children_of(self, unit_id: str) -> list[ContentUnit]:
        with self._lock:
            children = [self._units[child_id] for child_id in self._children.get(unit_id, ())]
        return sorted(children, key=unit_key)

    def votes_for(self, unit_id: str) -> list[VoteRecord]:
        with self._lock:
            votes = [vote for key, vote in self._votes.items() if key[0] == unit_id]
        return sorted(votes, key=lambda vote: vote.voter_id)

    def _unit_page(self, tree_id: str, after: UnitKey | None, limit: int) -> list[ContentUnit]:
        with self._lock:
            ordered = self._tree_units.get(tree_id, [])
            start = 0 if after is None else bisect_right(ordered, after, key=self._unit_sort_key)
            return [self._units[unit_id] for unit_id in ordered[start : start + limit]]

    def _comment_page(
        self, unit_id: str, after: CommentKey | None, limit: int
    ) -> list[Comment]:
        with self._lock:
            ordered = self._threads.get(unit_id, [])
            start = 0 if after is None else bisect_right(ordered, after, key=self._comment_sort_key)
            return [self._comments[cid] for cid in ordered[start : start + limit]]

    def _unit_sort_key(self, unit_id: str) -> UnitKey:
        return unit_key(self._units[unit_id])

    def _comment_sort_key(self, comment_id: str) -> CommentKey:
        return comment_key(self._comments[comment_id])

    def commit(self, changes: ChangeSet) -> None:
        with self._lock:
            self._check(changes)
            self._apply(changes)

    # Validation runs to completion before anything is applied, so a rejected
    # changeset leaves no trace.
    def _check(self, changes: ChangeSet) -> None:
        for tree in changes.new_trees:
            if tree.id in self._trees:
                raise ConflictError("tree", tree.id)
        pending_keys: set[tuple[str, int]] = set()
        for unit in changes.new_units:
            if unit.id in self._units:
                raise ConflictError("unit", unit.id)
            # Roots have no siblings.
            if unit.parent_id is None:
                continue
            sibling_key = (unit.parent_id, unit.sequence_key)
            if sibling_key in self._sibling_keys or sibling_key in pending_keys:
                raise ConflictError("unit", unit.id)
            pending_keys.add(sibling_key)
        pending_thread: set[tuple[str, int]] = set()
        for comment in changes.new_comments:
            thread_key = (comment.unit_id, comment.sequence_key)
            if comment.id in self._comments:
                raise ConflictError("comment", comment.id)
            if thread_key in self._thread_keys or thread_key in pending_thread:
                raise ConflictError("comment", comment.id)
            pending_thread.add(thread_key)
        for unit in changes.unit_updates:
            stored = self._units.get(unit.id)
            if stored is None or stored.version != unit.version:
                raise ConflictError("unit", unit.id)
        for tree in changes.tree_updates:
            stored_tree = self._trees.get(tree.id)
            if stored_tree is None or stored_tree.version != tree.version:
                raise ConflictError("tree", tree.id)

    def _apply(self, changes: ChangeSet) -> None:
        now = utcnow()
        for tree in changes.new_trees:
            self._trees[tree.id] = tree
        for unit in changes.new_units:
            self._units[unit.id] = unit
            insort(self._tree_units[unit.tree_id], unit.id, key=self._unit_sort_key)
            if unit.parent_id is not None:
                self._children[unit.parent_id].append(unit.id)
                self._sibling_keys.add((unit.parent_id, unit.sequence_key))
        for comment in changes.new_comments:
            self._comments[comment.id] = comment
            insort(self._threads[comment.unit_id], comment.id, key=self._comment_sort_key)
            self._thread_keys.add((comment.unit_id, comment.sequence_key))
        for unit in changes.unit_updates:
            self._units[unit.id] = replace(unit, version=unit.version + 1, updated_at=now)
        for tree in changes.tree_updates:
            self._trees[tree.id] = replace(tree, version=tree.version + 1, updated_at=now)
        for unit_id, voter_id in changes.vote_deletes:
            self._votes.pop((unit_id, voter_id), None)
        for vote in changes.vote_puts:
            self._votes[(vote.unit_id, vote.voter_id)] = vote

"""Service facade exposing the story operations to the API layer."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from taletree.core.errors import (
    PermissionDeniedError,
    TreeNotFoundError,
    UnitNotFoundError,
)
from taletree.records import (
    Comment,
    ContentUnit,
    StoryStatus,
    TreeRoot,
    VoteDirection,
    VoteRecord,
)
from taletree.services.assembler import TreeAssembler, TreeTraversal
from taletree.services.branches import BranchService
from taletree.services.comments import CommentThread
from taletree.services.sequence import SequenceClock
from taletree.services.transactions import RetryPolicy, Transaction, run_transaction
from taletree.services.votes import VoteLedger, VoteOutcome
from taletree.store.base import NodeStore

logger = logging.getLogger(__name__)


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


# Marks an update_story field the caller left alone.
UNSET = _Unset()


@dataclass(frozen=True, slots=True)
class AggregateReport:
    """Denormalized story counters next to the values recounted from units."""

    tree_id: str
    branch_count: int
    counted_units: int
    total_comment_count: int
    summed_comments: int

    @property
    def consistent(self) -> bool:
        return (
            self.branch_count == self.counted_units
            and self.total_comment_count == self.summed_comments
        )


class StoryService:
    """Entry point for every story, branch, vote and comment operation."""

    def __init__(
        self,
        store: NodeStore,
        *,
        policy: RetryPolicy | None = None,
        clock: SequenceClock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self._policy = policy
        self._sleep = sleep
        self.branches = BranchService(store, policy=policy, clock=clock, sleep=sleep)
        self.votes = VoteLedger(store, policy=policy, sleep=sleep)
        self.comments = CommentThread(store, policy=policy, clock=clock, sleep=sleep)
        self.assembler = TreeAssembler()

    # ── writes ───────────────────────────────────────────────────

    def create_tree(
        self,
        author_id: str,
        root_body: str,
        *,
        title: str = "",
        category: str | None = None,
        tags: str | Iterable[str] | None = None,
        status: StoryStatus | str = StoryStatus.PUBLISHED,
    ) -> tuple[str, str]:
        """Create a story with its root unit; returns ``(tree_id, root_unit_id)``."""
        return self.branches.create_tree(
            author_id,
            root_body,
            title=title,
            category=category,
            tags=tags,
            status=status,
        )

    def add_branch(
        self, tree_id: str, parent_unit_id: str, author_id: str, body: str
    ) -> ContentUnit:
        return self.branches.add_branch(tree_id, parent_unit_id, author_id, body)

    def cast_vote(
        self, unit_id: str, voter_id: str, direction: VoteDirection | str
    ) -> VoteOutcome:
        return self.votes.cast_vote(unit_id, voter_id, direction)

    def add_comment(
        self,
        unit_id: str,
        author_id: str,
        body: str,
        reply_to: str | None = None,
    ) -> Comment:
        return self.comments.add_comment(unit_id, author_id, body, reply_to=reply_to)

    def set_locked(self, tree_id: str, actor_id: str, locked: bool) -> TreeRoot:
        """Lock or unlock a story against new branches. Author only."""
        return self.update_story(tree_id, actor_id, is_locked=locked)

    def publish(self, tree_id: str, actor_id: str) -> TreeRoot:
        """Move a draft story to published. Author only."""
        return self.update_story(tree_id, actor_id, publish=True)

    def set_canonical_unit(self, tree_id: str, actor_id: str, unit_id: str | None) -> TreeRoot:
        """Mark one unit as the story's canonical branch, or clear the mark. Author only."""
        return self.update_story(tree_id, actor_id, canonical_unit_id=unit_id)

    def update_story(
        self,
        tree_id: str,
        actor_id: str,
        *,
        is_locked: bool | None = None,
        publish: bool = False,
        canonical_unit_id: str | None | _Unset = UNSET,
    ) -> TreeRoot:
        """Apply author-only story changes as one versioned write.

        Every argument is validated before anything is written, so a request
        that fails on one field changes none of them.

        Args:
            tree_id: Story to change.
            actor_id: Caller; must be the story author.
            is_locked: New lock state, or None to leave it.
            publish: Move the story to published.
            canonical_unit_id: Unit to mark as canonical, None to clear the
                mark, or ``UNSET`` to leave it.

        Raises:
            TreeNotFoundError: If the story does not exist.
            UnitNotFoundError: If ``canonical_unit_id`` is not a unit of the story.
            PermissionDeniedError: If ``actor_id`` is not the author.
        """
        self.get_story(tree_id)
        set_canonical = not isinstance(canonical_unit_id, _Unset)
        if set_canonical and canonical_unit_id is not None:
            unit = self.store.get_unit(canonical_unit_id)
            if unit is None or unit.tree_id != tree_id:
                raise UnitNotFoundError(canonical_unit_id)

        changes: dict[str, object] = {}
        if is_locked is not None:
            changes["is_locked"] = is_locked
        if publish:
            changes["status"] = StoryStatus.PUBLISHED
        if set_canonical:
            changes["canonical_unit_id"] = canonical_unit_id

        def work(txn: Transaction) -> TreeRoot:
            tree = txn.read_tree(tree_id)
            if tree.author_id != actor_id:
                raise PermissionDeniedError("Only the story author can change this story")
            if not changes:
                return tree
            return txn.update_tree(tree, lambda t: replace(t, **changes))

        run_transaction(
            self.store, work, policy=self._policy, sleep=self._sleep, label="update_story"
        )
        logger.info("Story %s updated (%s) by %s", tree_id, ", ".join(changes) or "no-op", actor_id)
        return self.get_story(tree_id)

    # ── reads ────────────────────────────────────────────────────

    def get_story(self, tree_id: str) -> TreeRoot:
        tree = self.store.get_tree(tree_id)
        if tree is None:
            raise TreeNotFoundError(tree_id)
        return tree

    def get_unit(self, unit_id: str) -> ContentUnit:
        unit = self.store.get_unit(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        return unit

    def children_of(self, unit_id: str) -> list[ContentUnit]:
        self.get_unit(unit_id)
        return self.store.children_of(unit_id)

    def get_tree(self, tree_id: str) -> TreeTraversal:
        """Return the story's units in deterministic depth-first reading order."""
        tree = self.get_story(tree_id)
        return self.assembler.assemble(
            tree_id,
            self._units_with_parents(tree_id),
            root_unit_id=tree.root_unit_id,
        )

    def _units_with_parents(self, tree_id: str) -> list[ContentUnit]:
        """Read a tree's units, fetching any parent the paged read went past.

        Pages are separate reads, so a unit can commit behind the cursor and
        gain a child before the read reaches the end.
        """
        by_id = {unit.id: unit for unit in self.store.units_in_tree(tree_id)}
        pending = {u.parent_id for u in by_id.values() if u.parent_id and u.parent_id not in by_id}
        while pending:
            fetched: list[ContentUnit] = []
            for parent_id in pending:
                parent = self.store.get_unit(parent_id)
                if parent is not None and parent.tree_id == tree_id:
                    by_id[parent.id] = parent
                    fetched.append(parent)
            if fetched:
                logger.debug("Fetched %d parent(s) missed by paged read", len(fetched))
            pending = {u.parent_id for u in fetched if u.parent_id and u.parent_id not in by_id}
        return list(by_id.values())

    def get_comments(self, unit_id: str) -> Iterable[Comment]:
        return self.comments.get_comments(unit_id)

    def get_vote(self, unit_id: str, voter_id: str) -> VoteDirection | None:
        return self.votes.get_vote(unit_id, voter_id)

    def votes_for(self, unit_id: str) -> list[VoteRecord]:
        return self.votes.votes_for(unit_id)

    def verify_aggregates(self, tree_id: str) -> AggregateReport:
        """Recount units and comments and compare them with the story counters.

        This is a diagnostic read, not a transaction; under concurrent writes
        the recount may straddle commits.
        """
        tree = self.get_story(tree_id)
        counted = 0
        summed = 0
        for unit in self.store.units_in_tree(tree_id):
            counted += 1
            summed += unit.comment_count
        report = AggregateReport(
            tree_id=tree_id,
            branch_count=tree.branch_count,
            counted_units=counted,
            total_comment_count=tree.total_comment_count,
            summed_comments=summed,
        )
        if not report.consistent:
            logger.warning("Aggregate drift in story %s: %s", tree_id, report)
        return report

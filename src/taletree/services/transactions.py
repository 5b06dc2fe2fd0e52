"""Optimistic transactions over a node store.

Every mutating operation runs as ``work(txn)``: it reads what it needs through
the transaction, computes new records synchronously, and stages them. The
runner then commits the staged changeset as one conditional write. A version
conflict discards the attempt and reruns ``work`` against fresh reads, with
exponential backoff, until the retry budget is spent.

Leaf-level count changes and their TreeRoot deltas are always staged in the
same transaction, which is what keeps ``branch_count`` and
``total_comment_count`` equal to the sum of their parts.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from taletree.core.errors import (
    ConflictError,
    TreeNotFoundError,
    UnitNotFoundError,
    WriteFailedError,
)
from taletree.core.settings import settings
from taletree.records import Comment, ContentUnit, TreeRoot, VoteRecord
from taletree.store.base import ChangeSet, NodeStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry with exponential backoff."""

    max_attempts: int = 5
    base_delay: float = 0.01
    max_delay: float = 0.2
    jitter: bool = True

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            max_attempts=settings.tx_max_attempts,
            base_delay=settings.tx_backoff_base_seconds,
            max_delay=settings.tx_backoff_max_seconds,
            jitter=settings.tx_backoff_jitter,
        )

    def delay_for(self, attempt: int) -> float:
        """Backoff before retrying after ``attempt`` (1-based) failed."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)
        return delay


class Transaction:
    """Read set and staged writes for one optimistic attempt.

    Reads go straight to the store and see the latest committed state. Writes
    are only staged; nothing reaches the store until the runner commits.
    """

    def __init__(self, store: NodeStore) -> None:
        self._store = store
        self.changes = ChangeSet()

    # ── reads ────────────────────────────────────────────────────

    def find_unit(self, unit_id: str) -> ContentUnit | None:
        return self._store.get_unit(unit_id)

    def read_unit(self, unit_id: str) -> ContentUnit:
        unit = self._store.get_unit(unit_id)
        if unit is None:
            raise UnitNotFoundError(unit_id)
        return unit

    def read_tree(self, tree_id: str) -> TreeRoot:
        tree = self._store.get_tree(tree_id)
        if tree is None:
            raise TreeNotFoundError(tree_id)
        return tree

    def find_comment(self, comment_id: str) -> Comment | None:
        return self._store.get_comment(comment_id)

    def read_vote(self, unit_id: str, voter_id: str) -> VoteRecord | None:
        return self._store.get_vote(unit_id, voter_id)

    # ── staged writes ────────────────────────────────────────────

    def insert_tree(self, tree: TreeRoot) -> None:
        self.changes.new_trees.append(tree)

    def insert_unit(self, unit: ContentUnit) -> None:
        self.changes.new_units.append(unit)

    def insert_comment(self, comment: Comment) -> None:
        self.changes.new_comments.append(comment)

    def update_unit(
        self, unit: ContentUnit, mutator: Callable[[ContentUnit], ContentUnit]
    ) -> ContentUnit:
        """Stage ``mutator(unit)``, conditional on ``unit.version`` still being current."""
        updated = replace(mutator(unit), version=unit.version)
        self.changes.unit_updates.append(updated)
        return updated

    def update_tree(
        self, tree: TreeRoot, mutator: Callable[[TreeRoot], TreeRoot]
    ) -> TreeRoot:
        """Stage ``mutator(tree)``, conditional on ``tree.version`` still being current."""
        updated = replace(mutator(tree), version=tree.version)
        self.changes.tree_updates.append(updated)
        return updated

    def put_vote(self, vote: VoteRecord) -> None:
        self.changes.vote_puts.append(vote)

    def delete_vote(self, unit_id: str, voter_id: str) -> None:
        self.changes.vote_deletes.append((unit_id, voter_id))


def run_transaction(
    store: NodeStore,
    work: Callable[[Transaction], T],
    *,
    policy: RetryPolicy | None = None,
    on_exhausted: Callable[[int], WriteFailedError] = WriteFailedError,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "write",
) -> T:
    """Run ``work`` and commit its staged writes, retrying on version conflicts.

    Args:
        store: Store to read from and commit to.
        work: Callable that reads through the transaction and stages writes.
            Exceptions it raises (not-found, validation) propagate immediately.
        policy: Retry budget and backoff. Defaults to the configured policy.
        on_exhausted: Builds the terminal error once retries run out.
        sleep: Injected for tests.
        label: Operation name used in log messages.

    Returns:
        Whatever ``work`` returned on the attempt that committed.

    Raises:
        WriteFailedError: When every attempt hit a conflict.
    """
    cfg = policy or RetryPolicy.from_settings()

    for attempt in range(1, cfg.max_attempts + 1):
        txn = Transaction(store)
        result = work(txn)
        if txn.changes.is_empty():
            return result
        try:
            store.commit(txn.changes)
        except ConflictError as exc:
            if attempt >= cfg.max_attempts:
                logger.warning(
                    "%s gave up after %d attempts (last conflict on %s %s)",
                    label,
                    attempt,
                    exc.kind,
                    exc.record_id,
                )
                raise on_exhausted(attempt) from exc
            delay = cfg.delay_for(attempt)
            logger.debug(
                "%s conflicted on %s %s, retrying in %.3fs (attempt %d/%d)",
                label,
                exc.kind,
                exc.record_id,
                delay,
                attempt,
                cfg.max_attempts,
            )
            sleep(delay)
            continue
        return result

    # Unreachable, but satisfies mypy
    msg = f"Transaction loop exited unexpectedly (max_attempts={cfg.max_attempts})"
    raise RuntimeError(msg)

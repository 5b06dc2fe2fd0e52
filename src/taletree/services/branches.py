"""Story creation and branch growth."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from taletree.core.errors import (
    EmptyContentError,
    ParentNotFoundError,
    TreeLockedError,
    ValidationError,
)
from taletree.core.settings import settings
from taletree.db.time import utcnow
from taletree.records import ContentUnit, StoryStatus, TreeRoot, new_id
from taletree.services.sequence import SequenceClock, default_clock
from taletree.services.transactions import RetryPolicy, Transaction, run_transaction
from taletree.store.base import NodeStore

logger = logging.getLogger(__name__)


def normalize_tags(tags: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split, trim and de-duplicate tags, keeping first-seen order.

    A single string is treated as a comma-separated list.
    """
    if tags is None:
        return ()
    raw = tags.split(",") if isinstance(tags, str) else tags
    seen: dict[str, None] = {}
    for tag in raw:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return tuple(seen)


def make_excerpt(body: str, length: int) -> str:
    """Return the opening ``length`` characters of a body, marked if truncated."""
    text = body.strip()
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def _check_body(body: str, what: str) -> None:
    if body is None or not body.strip():
        raise EmptyContentError(what)
    if len(body.strip()) < settings.unit_min_length:
        raise ValidationError(f"{what} must be at least {settings.unit_min_length} characters")
    if len(body) > settings.unit_max_length:
        raise ValidationError(f"{what} must be at most {settings.unit_max_length} characters")


def _check_title(title: str) -> str:
    cleaned = title.strip()
    if len(cleaned) < settings.title_min_length:
        raise ValidationError(f"Title must be at least {settings.title_min_length} characters")
    if len(cleaned) > settings.title_max_length:
        raise ValidationError(f"Title must be at most {settings.title_max_length} characters")
    return cleaned


class BranchService:
    """Creates story trees and attaches new units beneath existing ones."""

    def __init__(
        self,
        store: NodeStore,
        policy: RetryPolicy | None = None,
        clock: SequenceClock | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._policy = policy
        self._clock = clock or default_clock()
        self._sleep = sleep

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
        """Create a story and its root unit atomically.

        Returns:
            ``(tree_id, root_unit_id)``.

        Raises:
            EmptyContentError: If the root body is blank.
            ValidationError: If the title, body or status is invalid.
        """
        _check_body(root_body, "Story body")
        clean_title = _check_title(title)
        try:
            story_status = StoryStatus(status)
        except ValueError as err:
            raise ValidationError(f"Unknown story status: {status!r}") from err
        clean_tags = normalize_tags(tags)

        def work(txn: Transaction) -> tuple[str, str]:
            now = utcnow()
            tree_id = new_id()
            root = ContentUnit(
                id=new_id(),
                tree_id=tree_id,
                parent_id=None,
                author_id=author_id,
                body=root_body,
                sequence_key=self._clock.next(),
                created_at=now,
                updated_at=now,
            )
            txn.insert_tree(
                TreeRoot(
                    id=tree_id,
                    author_id=author_id,
                    root_unit_id=root.id,
                    created_at=now,
                    updated_at=now,
                    title=clean_title,
                    category=category,
                    tags=clean_tags,
                    status=story_status,
                    excerpt=make_excerpt(root_body, settings.excerpt_length),
                    branch_count=1,
                )
            )
            txn.insert_unit(root)
            return tree_id, root.id

        tree_id, root_id = run_transaction(
            self._store,
            work,
            policy=self._policy,
            sleep=self._sleep,
            label="create_tree",
        )
        logger.info("Story %s created by %s with root unit %s", tree_id, author_id, root_id)
        return tree_id, root_id

    def add_branch(
        self,
        tree_id: str,
        parent_unit_id: str,
        author_id: str,
        body: str,
    ) -> ContentUnit:
        """Attach a new unit under ``parent_unit_id`` and bump the story's branch count.

        Raises:
            EmptyContentError: If the body is blank.
            TreeNotFoundError: If the story does not exist.
            TreeLockedError: If the story is locked.
            ParentNotFoundError: If the parent is absent or belongs to another story.
            WriteFailedError: If every attempt lost a race.
        """
        _check_body(body, "Branch body")

        def work(txn: Transaction) -> ContentUnit:
            tree = txn.read_tree(tree_id)
            if tree.is_locked:
                raise TreeLockedError(tree_id)
            parent = txn.find_unit(parent_unit_id)
            if parent is None or parent.tree_id != tree_id:
                raise ParentNotFoundError(parent_unit_id)

            now = utcnow()
            unit = ContentUnit(
                id=new_id(),
                tree_id=tree_id,
                parent_id=parent.id,
                author_id=author_id,
                body=body,
                sequence_key=self._clock.next(),
                created_at=now,
                updated_at=now,
            )
            txn.insert_unit(unit)
            txn.update_tree(tree, lambda t: replace(t, branch_count=t.branch_count + 1))
            return unit

        unit = run_transaction(
            self._store,
            work,
            policy=self._policy,
            sleep=self._sleep,
            label="add_branch",
        )
        logger.info("Unit %s added under %s in story %s", unit.id, parent_unit_id, tree_id)
        return unit

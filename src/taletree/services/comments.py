"""Comment threads attached to units."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import replace

from taletree.core.errors import (
    CommentNotFoundError,
    EmptyContentError,
    UnitNotFoundError,
    ValidationError,
)
from taletree.core.settings import settings
from taletree.db.time import utcnow
from taletree.records import Comment, new_id
from taletree.services.sequence import SequenceClock, default_clock
from taletree.services.transactions import RetryPolicy, Transaction, run_transaction
from taletree.store.base import NodeStore

logger = logging.getLogger(__name__)


class CommentThread:
    """Append-only comment threads with per-unit and per-story counters."""

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

    def add_comment(
        self,
        unit_id: str,
        author_id: str,
        body: str,
        reply_to: str | None = None,
    ) -> Comment:
        """Append a comment and bump both comment counters in one transaction.

        Args:
            unit_id: Unit the comment is attached to.
            author_id: Opaque id of the commenting user.
            body: Comment text; must contain something other than whitespace.
            reply_to: Optional id of an earlier comment on the same unit.

        Returns:
            The stored comment.

        Raises:
            EmptyContentError: If the body is blank.
            ValidationError: If the body is too long or the reply too deep.
            UnitNotFoundError: If the unit does not exist.
            CommentNotFoundError: If ``reply_to`` is not a comment on this unit.
            WriteFailedError: If every attempt lost a race.
        """
        if body is None or not body.strip():
            raise EmptyContentError("Comment")
        if len(body) > settings.comment_max_length:
            raise ValidationError(
                f"Comment must be at most {settings.comment_max_length} characters"
            )

        def work(txn: Transaction) -> Comment:
            unit = txn.read_unit(unit_id)
            tree = txn.read_tree(unit.tree_id)

            depth = 0
            if reply_to is not None:
                parent = txn.find_comment(reply_to)
                if parent is None or parent.unit_id != unit_id:
                    raise CommentNotFoundError(reply_to)
                depth = parent.depth + 1
                if depth > settings.comment_max_depth:
                    raise ValidationError(
                        f"Replies may nest at most {settings.comment_max_depth} levels"
                    )

            comment = Comment(
                id=new_id(),
                unit_id=unit.id,
                tree_id=unit.tree_id,
                author_id=author_id,
                body=body,
                sequence_key=self._clock.next(),
                created_at=utcnow(),
                reply_to=reply_to,
                depth=depth,
            )
            txn.insert_comment(comment)
            txn.update_unit(unit, lambda u: replace(u, comment_count=u.comment_count + 1))
            txn.update_tree(
                tree,
                lambda t: replace(t, total_comment_count=t.total_comment_count + 1),
            )
            return comment

        comment = run_transaction(
            self._store,
            work,
            policy=self._policy,
            sleep=self._sleep,
            label="add_comment",
        )
        logger.info("Comment %s added to unit %s in story %s", comment.id, unit_id, comment.tree_id)
        return comment

    def get_comments(self, unit_id: str) -> Iterable[Comment]:
        """Return the unit's comments oldest first.

        The result is lazy and can be iterated again to re-read from the start.
        """
        if self._store.get_unit(unit_id) is None:
            raise UnitNotFoundError(unit_id)
        return self._store.comments_for(unit_id)

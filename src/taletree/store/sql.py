"""SQLAlchemy-backed node store."""

from __future__ import annotations

import logging

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from taletree.core.errors import ConflictError
from taletree.db.time import utcnow
from taletree.models import Story, StoryUnit, UnitComment, UnitVote
from taletree.models.vote import DIRECTION_DOWN, DIRECTION_UP
from taletree.records import (
    Comment,
    ContentUnit,
    StoryStatus,
    TreeRoot,
    VoteDirection,
    VoteRecord,
    VoteTally,
)
from taletree.store.base import ChangeSet, CommentKey, NodeStore, UnitKey

__all__ = ["SqlNodeStore"]

logger = logging.getLogger(__name__)

_DIRECTION_TO_DB = {VoteDirection.UP: DIRECTION_UP, VoteDirection.DOWN: DIRECTION_DOWN}
_DIRECTION_FROM_DB = {value: key for key, value in _DIRECTION_TO_DB.items()}


def _tree_record(row: Story) -> TreeRoot:
    return TreeRoot(
        id=row.id,
        author_id=row.author_id,
        root_unit_id=row.root_unit_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        title=row.title,
        category=row.category,
        tags=tuple(row.tags or ()),
        status=StoryStatus(row.status),
        is_locked=row.is_locked,
        canonical_unit_id=row.canonical_unit_id,
        excerpt=row.excerpt,
        branch_count=row.branch_count,
        total_comment_count=row.total_comment_count,
        version=row.version,
    )


def _unit_record(row: StoryUnit) -> ContentUnit:
    return ContentUnit(
        id=row.id,
        tree_id=row.tree_id,
        parent_id=row.parent_id,
        author_id=row.author_id,
        body=row.body,
        sequence_key=row.sequence_key,
        created_at=row.created_at,
        updated_at=row.updated_at,
        tally=VoteTally(up=row.up_count, down=row.down_count),
        comment_count=row.comment_count,
        version=row.version,
    )


def _comment_record(row: UnitComment) -> Comment:
    return Comment(
        id=row.id,
        unit_id=row.unit_id,
        tree_id=row.tree_id,
        author_id=row.author_id,
        body=row.body,
        sequence_key=row.sequence_key,
        created_at=row.created_at,
        reply_to=row.reply_to,
        depth=row.depth,
    )


def _vote_record(row: UnitVote) -> VoteRecord:
    return VoteRecord(
        unit_id=row.unit_id,
        voter_id=row.voter_id,
        direction=_DIRECTION_FROM_DB[row.direction],
    )


class SqlNodeStore(NodeStore):
    """Node store over any SQLAlchemy-supported relational database.

    Each read opens a short-lived session; each commit runs in its own
    transaction and checks versions with ``UPDATE ... WHERE version = :read``.
    """

    def __init__(self, session_factory: sessionmaker[Session], page_size: int = 200) -> None:
        """Initialize the store with a session factory bound to an engine."""
        super().__init__(page_size)
        self._session_factory = session_factory

    def get_tree(self, tree_id: str) -> TreeRoot | None:
        with self._session_factory() as session:
            row = session.get(Story, tree_id)
            return _tree_record(row) if row is not None else None

    def get_unit(self, unit_id: str) -> ContentUnit | None:
        with self._session_factory() as session:
            row = session.get(StoryUnit, unit_id)
            return _unit_record(row) if row is not None else None

    def get_comment(self, comment_id: str) -> Comment | None:
        with self._session_factory() as session:
            row = session.get(UnitComment, comment_id)
            return _comment_record(row) if row is not None else None

    def get_vote(self, unit_id: str, voter_id: str) -> VoteRecord | None:
        with self._session_factory() as session:
            row = session.get(UnitVote, (unit_id, voter_id))
            return _vote_record(row) if row is not None else None

    def children_of(self, unit_id: str) -> list[ContentUnit]:
        stmt = (
            select(StoryUnit)
            .where(StoryUnit.parent_id == unit_id)
            .order_by(StoryUnit.sequence_key, StoryUnit.id)
        )
        with self._session_factory() as session:
            return [_unit_record(row) for row in session.scalars(stmt)]

    def votes_for(self, unit_id: str) -> list[VoteRecord]:
        stmt = select(UnitVote).where(UnitVote.unit_id == unit_id).order_by(UnitVote.voter_id)
        with self._session_factory() as session:
            return [_vote_record(row) for row in session.scalars(stmt)]

    def _unit_page(self, tree_id: str, after: UnitKey | None, limit: int) -> list[ContentUnit]:
        stmt = select(StoryUnit).where(StoryUnit.tree_id == tree_id)
        if after is not None:
            seq, unit_id = after
            stmt = stmt.where(
                or_(
                    StoryUnit.sequence_key > seq,
                    and_(StoryUnit.sequence_key == seq, StoryUnit.id > unit_id),
                )
            )
        stmt = stmt.order_by(StoryUnit.sequence_key, StoryUnit.id).limit(limit)
        with self._session_factory() as session:
            return [_unit_record(row) for row in session.scalars(stmt)]

    def _comment_page(
        self, unit_id: str, after: CommentKey | None, limit: int
    ) -> list[Comment]:
        stmt = select(UnitComment).where(UnitComment.unit_id == unit_id)
        if after is not None:
            created_at, seq = after
            stmt = stmt.where(
                or_(
                    UnitComment.created_at > created_at,
                    and_(UnitComment.created_at == created_at, UnitComment.sequence_key > seq),
                )
            )
        stmt = stmt.order_by(UnitComment.created_at, UnitComment.sequence_key).limit(limit)
        with self._session_factory() as session:
            return [_comment_record(row) for row in session.scalars(stmt)]

    def commit(self, changes: ChangeSet) -> None:
        try:
            with self._session_factory.begin() as session:
                self._apply_updates(session, changes)
                self._apply_inserts(session, changes)
        except IntegrityError as exc:
            logger.debug("Insert collided with an existing key: %s", exc.orig)
            raise ConflictError("insert", _first_insert_id(changes)) from exc

    # Conditional updates run first; the first stale version aborts the
    # transaction before any insert is flushed.
    def _apply_updates(self, session: Session, changes: ChangeSet) -> None:
        now = utcnow()
        for unit in changes.unit_updates:
            result = session.execute(
                update(StoryUnit)
                .where(StoryUnit.id == unit.id, StoryUnit.version == unit.version)
                .values(
                    up_count=unit.tally.up,
                    down_count=unit.tally.down,
                    comment_count=unit.comment_count,
                    version=unit.version + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError("unit", unit.id)

        for tree in changes.tree_updates:
            result = session.execute(
                update(Story)
                .where(Story.id == tree.id, Story.version == tree.version)
                .values(
                    title=tree.title,
                    category=tree.category,
                    tags=list(tree.tags),
                    status=tree.status.value,
                    is_locked=tree.is_locked,
                    canonical_unit_id=tree.canonical_unit_id,
                    excerpt=tree.excerpt,
                    branch_count=tree.branch_count,
                    total_comment_count=tree.total_comment_count,
                    version=tree.version + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError("tree", tree.id)

        for unit_id, voter_id in changes.vote_deletes:
            session.execute(
                delete(UnitVote)
                .where(UnitVote.unit_id == unit_id, UnitVote.voter_id == voter_id)
                .execution_options(synchronize_session=False)
            )
        for vote in changes.vote_puts:
            session.merge(
                UnitVote(
                    unit_id=vote.unit_id,
                    voter_id=vote.voter_id,
                    direction=_DIRECTION_TO_DB[vote.direction],
                    updated_at=now,
                )
            )

    def _apply_inserts(self, session: Session, changes: ChangeSet) -> None:
        for tree in changes.new_trees:
            session.add(
                Story(
                    id=tree.id,
                    author_id=tree.author_id,
                    title=tree.title,
                    category=tree.category,
                    tags=list(tree.tags),
                    status=tree.status.value,
                    is_locked=tree.is_locked,
                    excerpt=tree.excerpt,
                    root_unit_id=tree.root_unit_id,
                    canonical_unit_id=tree.canonical_unit_id,
                    branch_count=tree.branch_count,
                    total_comment_count=tree.total_comment_count,
                    version=tree.version,
                    created_at=tree.created_at,
                    updated_at=tree.updated_at,
                )
            )
        # Flush parents before children so self-referencing rows insert in order.
        session.flush()
        for unit in changes.new_units:
            session.add(
                StoryUnit(
                    id=unit.id,
                    tree_id=unit.tree_id,
                    parent_id=unit.parent_id,
                    author_id=unit.author_id,
                    body=unit.body,
                    sequence_key=unit.sequence_key,
                    up_count=unit.tally.up,
                    down_count=unit.tally.down,
                    comment_count=unit.comment_count,
                    version=unit.version,
                    created_at=unit.created_at,
                    updated_at=unit.updated_at,
                )
            )
            session.flush()
        for comment in changes.new_comments:
            session.add(
                UnitComment(
                    id=comment.id,
                    unit_id=comment.unit_id,
                    tree_id=comment.tree_id,
                    author_id=comment.author_id,
                    body=comment.body,
                    reply_to=comment.reply_to,
                    depth=comment.depth,
                    sequence_key=comment.sequence_key,
                    created_at=comment.created_at,
                )
            )
        session.flush()


def _first_insert_id(changes: ChangeSet) -> str:
    for group in (changes.new_trees, changes.new_units, changes.new_comments):
        if group:
            return group[0].id
    return "?"

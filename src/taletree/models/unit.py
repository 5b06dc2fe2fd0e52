# src/taletree/models/unit.py
"""SQLAlchemy model for content units."""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from taletree.db.session import Base
from taletree.db.time import utcnow


class StoryUnit(Base):
    """One node of a story tree.

    Units are never re-parented or deleted; ``tree_id`` and ``parent_id`` are
    written once at insert time.
    """

    __tablename__ = "story_unit"
    __table_args__ = (
        UniqueConstraint("parent_id", "sequence_key", name="uq_story_unit_parent_seq"),
        Index("ix_story_unit_tree_seq", "tree_id", "sequence_key", "id"),
        Index("ix_story_unit_parent_id", "parent_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    tree_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("story.id"),
        nullable=False,
    )
    # Root units have parent_id = NULL.
    parent_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("story_unit.id"),
        nullable=True,
    )
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    # Strictly increasing; orders siblings chronologically.
    sequence_key: Mapped[int] = mapped_column(BigInteger, nullable=False)

    up_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    down_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

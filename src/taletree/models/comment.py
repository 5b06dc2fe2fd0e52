# src/taletree/models/comment.py
"""SQLAlchemy model for unit comments."""

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


class UnitComment(Base):
    """Append-only remark attached to a unit."""

    __tablename__ = "unit_comment"
    __table_args__ = (
        UniqueConstraint("unit_id", "sequence_key", name="uq_unit_comment_unit_seq"),
        Index("ix_unit_comment_thread", "unit_id", "created_at", "sequence_key"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    unit_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("story_unit.id"),
        nullable=False,
    )
    tree_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("story.id"),
        nullable=False,
    )
    author_id: Mapped[str] = mapped_column(String(128), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    # Threaded replies; top-level comments have reply_to = NULL and depth 0.
    reply_to: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("unit_comment.id"),
        nullable=True,
    )
    depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Breaks created_at ties in insertion order.
    sequence_key: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

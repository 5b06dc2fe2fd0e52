# src/taletree/models/story.py
"""SQLAlchemy model for story trees."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from taletree.db.session import Base
from taletree.db.time import utcnow


class Story(Base):
    """Root entity owning one branching tree of units.

    ``branch_count`` and ``total_comment_count`` are denormalized aggregates;
    they are only ever written in the same transaction as the unit-level
    change they summarize.
    """

    __tablename__ = "story"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    author_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    # "draft" or "published"
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="published")
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    excerpt: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # No FK: story and its root unit are inserted together and reference each other.
    root_unit_id: Mapped[str] = mapped_column(String(32), nullable=False)
    canonical_unit_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    branch_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Optimistic concurrency token, bumped on every update.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

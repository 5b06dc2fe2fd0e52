# src/taletree/models/vote.py
"""Models capturing voting interactions on units."""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from taletree.db.session import Base
from taletree.db.time import utcnow

DIRECTION_UP = 1
DIRECTION_DOWN = -1


class UnitVote(Base):
    """Per-voter vote on a unit.

    Rows are only written together with a version bump on the owning unit, so
    the unit's version guards the whole vote set.
    """

    __tablename__ = "unit_vote"
    __table_args__ = (
        CheckConstraint("direction IN (1, -1)", name="ck_unit_vote_direction"),
        Index("ix_unit_vote_unit_id", "unit_id"),
    )

    unit_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("story_unit.id", ondelete="CASCADE"),
        primary_key=True,
    )

    # Composite primary key prevents duplicate votes from the same voter.
    voter_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    # 1 = upvote, -1 = downvote.
    direction: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

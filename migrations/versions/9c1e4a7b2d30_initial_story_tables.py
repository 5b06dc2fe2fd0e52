"""initial story tables

Revision ID: 9c1e4a7b2d30
Revises:
Create Date: 2026-10-19 09:12:44.501233

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "9c1e4a7b2d30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create story, unit, vote and comment tables."""
    op.create_table(
        "story",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("author_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("is_locked", sa.Boolean(), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=False),
        sa.Column("root_unit_id", sa.String(length=32), nullable=False),
        sa.Column("canonical_unit_id", sa.String(length=32), nullable=True),
        sa.Column("branch_count", sa.Integer(), nullable=False),
        sa.Column("total_comment_count", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_story_author_id", "story", ["author_id"])

    op.create_table(
        "story_unit",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("tree_id", sa.String(length=32), nullable=False),
        sa.Column("parent_id", sa.String(length=32), nullable=True),
        sa.Column("author_id", sa.String(length=128), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("sequence_key", sa.BigInteger(), nullable=False),
        sa.Column("up_count", sa.Integer(), nullable=False),
        sa.Column("down_count", sa.Integer(), nullable=False),
        sa.Column("comment_count", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tree_id"], ["story.id"]),
        sa.ForeignKeyConstraint(["parent_id"], ["story_unit.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("parent_id", "sequence_key", name="uq_story_unit_parent_seq"),
    )
    op.create_index("ix_story_unit_tree_seq", "story_unit", ["tree_id", "sequence_key", "id"])
    op.create_index("ix_story_unit_parent_id", "story_unit", ["parent_id"])

    op.create_table(
        "unit_vote",
        sa.Column("unit_id", sa.String(length=32), nullable=False),
        sa.Column("voter_id", sa.String(length=128), nullable=False),
        sa.Column("direction", sa.SmallInteger(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("direction IN (1, -1)", name="ck_unit_vote_direction"),
        sa.ForeignKeyConstraint(["unit_id"], ["story_unit.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("unit_id", "voter_id"),
    )
    op.create_index("ix_unit_vote_unit_id", "unit_vote", ["unit_id"])

    op.create_table(
        "unit_comment",
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column("unit_id", sa.String(length=32), nullable=False),
        sa.Column("tree_id", sa.String(length=32), nullable=False),
        sa.Column("author_id", sa.String(length=128), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("reply_to", sa.String(length=32), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=False),
        sa.Column("sequence_key", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["unit_id"], ["story_unit.id"]),
        sa.ForeignKeyConstraint(["tree_id"], ["story.id"]),
        sa.ForeignKeyConstraint(["reply_to"], ["unit_comment.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("unit_id", "sequence_key", name="uq_unit_comment_unit_seq"),
    )
    op.create_index(
        "ix_unit_comment_thread",
        "unit_comment",
        ["unit_id", "created_at", "sequence_key"],
    )


def downgrade() -> None:
    """Drop the story tables."""
    op.drop_index("ix_unit_comment_thread", table_name="unit_comment")
    op.drop_table("unit_comment")
    op.drop_index("ix_unit_vote_unit_id", table_name="unit_vote")
    op.drop_table("unit_vote")
    op.drop_index("ix_story_unit_parent_id", table_name="story_unit")
    op.drop_index("ix_story_unit_tree_seq", table_name="story_unit")
    op.drop_table("story_unit")
    op.drop_index("ix_story_author_id", table_name="story")
    op.drop_table("story")

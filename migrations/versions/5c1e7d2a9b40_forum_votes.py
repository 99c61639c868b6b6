"""forum posts, comments, votes and karma

Revision ID: 5c1e7d2a9b40
Revises:
Create Date: 2026-10-18 09:40:12.412093

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e7d2a9b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create forum content, vote and karma storage."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("karma_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "forum_posts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("vote_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_forum_posts_author", "forum_posts", ["author_id"])
    op.create_index("idx_forum_posts_vote_score", "forum_posts", ["vote_score"])

    op.create_table(
        "forum_comments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("post_id", sa.String(length=36), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("parent_id", sa.String(length=36), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("vote_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["post_id"], ["forum_posts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["parent_id"], ["forum_comments.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_forum_comments_post", "forum_comments", ["post_id"])
    op.create_index("idx_forum_comments_author", "forum_comments", ["author_id"])
    op.create_index("idx_forum_comments_parent", "forum_comments", ["parent_id"])

    op.create_table(
        "forum_votes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=False),
        sa.Column("target_type", sa.String(length=20), nullable=False),
        sa.Column("vote_type", sa.SmallInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("vote_type IN (1, -1)", name="ck_forum_votes_vote_type"),
        sa.CheckConstraint(
            "target_type IN ('POST', 'COMMENT')",
            name="ck_forum_votes_target_type",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "target_id",
            "target_type",
            name="idx_forum_votes_unique",
        ),
    )
    op.create_index("idx_forum_votes_target", "forum_votes", ["target_id", "target_type"])
    op.create_index("idx_forum_votes_user", "forum_votes", ["user_id"])


def downgrade() -> None:
    """Drop forum vote storage."""
    op.drop_index("idx_forum_votes_user", table_name="forum_votes")
    op.drop_index("idx_forum_votes_target", table_name="forum_votes")
    op.drop_table("forum_votes")
    op.drop_index("idx_forum_comments_parent", table_name="forum_comments")
    op.drop_index("idx_forum_comments_author", table_name="forum_comments")
    op.drop_index("idx_forum_comments_post", table_name="forum_comments")
    op.drop_table("forum_comments")
    op.drop_index("idx_forum_posts_vote_score", table_name="forum_posts")
    op.drop_index("idx_forum_posts_author", table_name="forum_posts")
    op.drop_table("forum_posts")
    op.drop_table("users")

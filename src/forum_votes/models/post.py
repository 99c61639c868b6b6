# src/forum_votes/models/post.py
"""SQLAlchemy models for voteable forum content."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from forum_votes.db.session import Base
from forum_votes.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Post(Base):
    """Top-level forum post."""

    __tablename__ = "forum_posts"
    __table_args__ = (
        Index("idx_forum_posts_author", "author_id"),
        Index("idx_forum_posts_vote_score", "vote_score"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    # Nulled when the author account is removed; votes on such posts are rejected.
    author_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Cached sum of vote directions; written only by the vote coordinator.
    vote_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class Comment(Base):
    """Comment on a post, optionally replying to another comment."""

    __tablename__ = "forum_comments"
    __table_args__ = (
        Index("idx_forum_comments_post", "post_id"),
        Index("idx_forum_comments_author", "author_id"),
        Index("idx_forum_comments_parent", "parent_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("forum_posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    author_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("forum_comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    vote_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

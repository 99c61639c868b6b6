# src/forum_votes/models/vote.py
"""Models capturing voting interactions on posts and comments."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Final

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from forum_votes.db.session import Base
from forum_votes.db.time import utcnow

UPVOTE: Final[int] = 1
DOWNVOTE: Final[int] = -1
VALID_DIRECTIONS: Final[frozenset[int]] = frozenset({UPVOTE, DOWNVOTE})


class VoteTargetType(str, enum.Enum):
    """Kinds of content that accept votes."""

    POST = "POST"
    COMMENT = "COMMENT"


class ForumVote(Base):
    """Per-user vote on a post or comment.

    The target is polymorphic: ``target_id`` points at ``forum_posts`` or
    ``forum_comments`` depending on ``target_type``, so there is no foreign key
    on it.
    """

    __tablename__ = "forum_votes"
    __table_args__ = (
        # At most one vote per user per target.
        UniqueConstraint(
            "user_id",
            "target_id",
            "target_type",
            name="idx_forum_votes_unique",
        ),
        CheckConstraint("vote_type IN (1, -1)", name="ck_forum_votes_vote_type"),
        CheckConstraint(
            "target_type IN ('POST', 'COMMENT')",
            name="ck_forum_votes_target_type",
        ),
        Index("idx_forum_votes_target", "target_id", "target_type"),
        Index("idx_forum_votes_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    target_id: Mapped[str] = mapped_column(String(36), nullable=False)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # 1 = upvote, -1 = downvote.
    vote_type: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

# src/forum_votes/models/__init__.py
"""SQLAlchemy models for the forum vote engine."""

from .post import Comment, Post
from .user import User
from .vote import ForumVote, VoteTargetType

__all__ = [
    "Comment", "Post",
    "User",
    "ForumVote", "VoteTargetType",
]

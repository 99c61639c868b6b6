"""Data access helpers for author karma."""
from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from forum_votes.models.user import User

__all__ = ["UserRepository"]


class UserRepository:
    """Author ledger backed by ``users.karma_points``."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def lock_author_for_update(self, author_id: str) -> bool:
        """Lock the author's row; return ``False`` if the user does not exist."""
        found = self.session.execute(
            select(User.id).where(User.id == author_id).with_for_update()
        ).scalar_one_or_none()
        return found is not None

    def apply_karma_delta(self, author_id: str, delta: int) -> int:
        """Add ``delta`` to the author's karma and return the new value."""
        self.session.execute(
            update(User)
            .where(User.id == author_id)
            .values(karma_points=User.karma_points + delta)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(
            select(User.karma_points).where(User.id == author_id)
        ).scalar_one()

    def get_karma(self, user_id: str) -> int | None:
        """Return a user's karma, or ``None`` if the user does not exist."""
        return self.session.execute(
            select(User.karma_points).where(User.id == user_id)
        ).scalar_one_or_none()

"""Data access helpers for the score aggregate on posts and comments."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from forum_votes.models.post import Comment, Post
from forum_votes.models.vote import VoteTargetType
from forum_votes.services.errors import TargetNotFound

__all__ = ["ContentRepository", "LockedContent"]

_CONTENT_MODELS: dict[VoteTargetType, type[Post] | type[Comment]] = {
    VoteTargetType.POST: Post,
    VoteTargetType.COMMENT: Comment,
}


@dataclass(frozen=True)
class LockedContent:
    """Identity of a content row locked for the current transaction."""

    target_id: str
    target_type: VoteTargetType
    author_id: str | None


class ContentRepository:
    """Access to the cached ``vote_score`` of voteable content."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @staticmethod
    def model_for(target_type: VoteTargetType) -> type[Post] | type[Comment]:
        return _CONTENT_MODELS[target_type]

    def lock_content_for_update(
        self,
        target_id: str,
        target_type: VoteTargetType,
    ) -> LockedContent:
        """Lock the content row and return its author.

        Raises:
            TargetNotFound: If no post or comment with that id exists.
        """
        model = self.model_for(target_type)
        row = self.session.execute(
            select(model.id, model.author_id).where(model.id == target_id).with_for_update()
        ).first()
        if row is None:
            raise TargetNotFound(target_type.value, target_id)
        return LockedContent(target_id=row.id, target_type=target_type, author_id=row.author_id)

    def apply_score_delta(self, target_id: str, target_type: VoteTargetType, delta: int) -> int:
        """Add ``delta`` to the content score and return the new value."""
        model = self.model_for(target_type)
        self.session.execute(
            update(model)
            .where(model.id == target_id)
            .values(vote_score=model.vote_score + delta)
            .execution_options(synchronize_session=False)
        )
        score = self.get_score(target_id, target_type)
        if score is None:
            raise TargetNotFound(target_type.value, target_id)
        return score

    def get_score(self, target_id: str, target_type: VoteTargetType) -> int | None:
        """Return the cached score, or ``None`` if the content does not exist."""
        model = self.model_for(target_type)
        return self.session.execute(
            select(model.vote_score).where(model.id == target_id)
        ).scalar_one_or_none()

"""Data access helpers for per-user vote records."""
from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from forum_votes.models.vote import ForumVote, VoteTargetType

__all__ = ["VoteRepository"]


class VoteRepository:
    """Vote store keyed by ``(voter, target, target type)``.

    Mutating methods assume the caller holds the lock on the voted content row
    in the same transaction; every writer of a vote takes that lock first.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_vote(
        self,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType,
        *,
        for_update: bool = False,
        refresh: bool = False,
    ) -> ForumVote | None:
        """Return the voter's vote on a target, optionally locking the row.

        ``refresh`` overwrites any copy already held by the session with the
        row as the database currently has it.
        """
        stmt = select(ForumVote).where(
            ForumVote.user_id == voter_id,
            ForumVote.target_id == target_id,
            ForumVote.target_type == target_type.value,
        )
        if for_update:
            stmt = stmt.with_for_update()
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.session.execute(stmt).scalars().first()

    def insert_vote(
        self,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType,
        direction: int,
    ) -> ForumVote:
        """Insert a new vote and flush it so constraint violations surface here."""
        vote = ForumVote(
            user_id=voter_id,
            target_id=target_id,
            target_type=target_type.value,
            vote_type=direction,
        )
        self.session.add(vote)
        self.session.flush()
        return vote

    def update_vote_direction(self, vote: ForumVote, new_direction: int) -> None:
        """Flip an existing vote in place."""
        vote.vote_type = new_direction
        self.session.flush()

    def delete_vote(self, vote: ForumVote) -> None:
        """Remove a retracted vote."""
        self.session.delete(vote)
        self.session.flush()

    def list_votes_for_target(
        self,
        target_id: str,
        target_type: VoteTargetType,
    ) -> list[ForumVote]:
        """Return every vote on a target, oldest first."""
        result = self.session.execute(
            select(ForumVote)
            .where(
                ForumVote.target_id == target_id,
                ForumVote.target_type == target_type.value,
            )
            .order_by(ForumVote.created_at, ForumVote.id)
        )
        return list(result.scalars())

    def sum_directions(self, target_id: str, target_type: VoteTargetType) -> int:
        """Return the signed sum of votes on a target.

        Used for auditing only; the coordinator never derives deltas from it.
        """
        total = self.session.execute(
            select(func.coalesce(func.sum(ForumVote.vote_type), 0)).where(
                ForumVote.target_id == target_id,
                ForumVote.target_type == target_type.value,
            )
        ).scalar_one()
        return int(total)

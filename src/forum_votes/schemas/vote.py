# src/forum_votes/schemas/vote.py
"""Vote-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from forum_votes.models.vote import VoteTargetType
from forum_votes.services.transitions import VoteAction


class VoteRequest(BaseModel):
    """Schema for a vote request coming from an authenticated caller."""

    model_config = ConfigDict(frozen=True)

    voter_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)
    target_type: VoteTargetType
    direction: Literal[-1, 1] | None = Field(
        ...,
        description="1 for upvote, -1 for downvote, null to retract",
    )

    @field_validator("direction", mode="before")
    @classmethod
    def _reject_booleans(cls, value: object) -> object:
        if isinstance(value, bool):
            raise ValueError("direction must be 1, -1 or null")
        return value


class VoteOutcome(BaseModel):
    """Committed result of a vote operation."""

    voter_id: str
    target_id: str
    target_type: VoteTargetType
    action: VoteAction
    previous_direction: int | None
    direction: int | None
    delta: int
    score: int
    author_id: str
    author_karma: int

    @property
    def changed(self) -> bool:
        """Return True if the operation modified any stored state."""
        return self.delta != 0

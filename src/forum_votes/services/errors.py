# src/forum_votes/services/errors.py
"""Exceptions raised by the vote transaction coordinator."""

from __future__ import annotations

from typing import ClassVar


class VoteError(RuntimeError):
    """Base exception for every failed vote operation.

    A raised ``VoteError`` always means the surrounding transaction was rolled
    back and no vote, score or karma change is visible.
    """

    retryable: ClassVar[bool] = False


class InvalidVoteRequest(VoteError):
    """Raised when the request is rejected before any lock is taken."""


class InvalidDirection(InvalidVoteRequest):
    """Raised when a direction is not one of ``1``, ``-1`` or ``None``."""

    def __init__(self, direction: object) -> None:
        super().__init__(f"Invalid vote direction {direction!r}; expected 1, -1 or None")
        self.direction = direction


class InvalidTargetType(InvalidVoteRequest):
    """Raised when the target type is neither ``POST`` nor ``COMMENT``."""

    def __init__(self, target_type: object) -> None:
        super().__init__(f"Invalid vote target type {target_type!r}; expected POST or COMMENT")
        self.target_type = target_type


class TargetNotFound(VoteError):
    """Raised when the voted post or comment does not exist."""

    def __init__(self, target_type: str, target_id: str) -> None:
        super().__init__(f"Target {target_type} with id {target_id} not found")
        self.target_type = target_type
        self.target_id = target_id


class AuthorNotFound(VoteError):
    """Raised when content exists but its author cannot be resolved.

    This is a data-integrity fault: applying the score without the karma
    would let the two aggregates drift apart.
    """

    def __init__(self, target_type: str, target_id: str, author_id: str | None) -> None:
        if author_id is None:
            message = f"{target_type} {target_id} has no author"
        else:
            message = f"Author {author_id} of {target_type} {target_id} not found"
        super().__init__(message)
        self.target_type = target_type
        self.target_id = target_id
        self.author_id = author_id


class RetryableVoteError(VoteError):
    """Base class for contention failures the caller may safely retry."""

    retryable: ClassVar[bool] = True


class LockTimeout(RetryableVoteError):
    """Raised when a row lock could not be acquired within the timeout."""


class DeadlockDetected(RetryableVoteError):
    """Raised when the storage engine aborted the transaction to break a deadlock."""


class StorageFailure(VoteError):
    """Raised for any other persistence error during read, write or commit."""

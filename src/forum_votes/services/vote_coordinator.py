# src/forum_votes/services/vote_coordinator.py
"""Vote transaction coordinator.

The coordinator is the only writer of vote records, content scores and author
karma. Every call runs in one transaction that locks, in this fixed order,

1. the caller's existing vote row for the target,
2. the target post or comment row,
3. the author's user row,

so concurrent votes touching the same rows always request them in the same
sequence and cannot deadlock against each other.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from forum_votes.core.settings import Settings
from forum_votes.db.errors import classify_db_error
from forum_votes.db.session import Database
from forum_votes.models.vote import VALID_DIRECTIONS, VoteTargetType
from forum_votes.repositories.content_repo import ContentRepository
from forum_votes.repositories.user_repo import UserRepository
from forum_votes.repositories.vote_repo import VoteRepository
from forum_votes.schemas.vote import VoteOutcome, VoteRequest
from forum_votes.services.errors import (
    AuthorNotFound,
    InvalidDirection,
    InvalidTargetType,
    InvalidVoteRequest,
    RetryableVoteError,
    VoteError,
)
from forum_votes.services.transitions import VoteAction, plan_transition

logger = logging.getLogger(__name__)


def validate_direction(direction: object) -> int | None:
    """Return ``direction`` if it is ``1``, ``-1`` or ``None``.

    Raises:
        InvalidDirection: For anything else, including booleans.
    """
    if direction is None:
        return None
    if isinstance(direction, bool) or not isinstance(direction, int):
        raise InvalidDirection(direction)
    if direction not in VALID_DIRECTIONS:
        raise InvalidDirection(direction)
    return direction


def validate_target_type(target_type: object) -> VoteTargetType:
    """Coerce ``target_type`` to a :class:`VoteTargetType`."""
    if isinstance(target_type, VoteTargetType):
        return target_type
    try:
        return VoteTargetType(target_type)
    except ValueError as exc:
        raise InvalidTargetType(target_type) from exc


class VoteCoordinator:
    """Single entry point for casting, flipping and retracting votes."""

    def __init__(
        self,
        database: Database,
        settings: Settings | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.database = database
        self.settings = settings or Settings()
        self._sleep = sleep

    def cast_vote(
        self,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType | str,
        direction: int | None,
    ) -> VoteOutcome:
        """Apply one vote request atomically.

        Args:
            voter_id: Authenticated user casting the vote.
            target_id: Post or comment identifier.
            target_type: ``POST`` or ``COMMENT``.
            direction: ``1``, ``-1`` or ``None`` to retract.

        Returns:
            The committed outcome, including the delta applied to both the
            target's score and its author's karma.

        Raises:
            InvalidDirection: Rejected before any lock is taken.
            InvalidTargetType: Rejected before any lock is taken.
            TargetNotFound: The target does not exist; nothing was written.
            AuthorNotFound: The target has no resolvable author; nothing was written.
            LockTimeout: A lock wait exceeded the configured timeout. Retryable.
            DeadlockDetected: The database aborted the transaction. Retryable.
            StorageFailure: Any other persistence error; nothing was written.
        """
        requested = validate_direction(direction)
        kind = validate_target_type(target_type)

        try:
            with self.database.transaction() as session:
                outcome = self._apply(session, voter_id, target_id, kind, requested)
        except VoteError as exc:
            logger.info(
                "Vote by %s on %s %s rejected: %s",
                voter_id,
                kind.value,
                target_id,
                exc,
            )
            raise
        except SQLAlchemyError as exc:
            error = classify_db_error(exc)
            if error.retryable:
                logger.warning(
                    "Vote by %s on %s %s aborted by contention: %s",
                    voter_id,
                    kind.value,
                    target_id,
                    error,
                )
            else:
                logger.error(
                    "Error in vote transaction for %s on %s %s",
                    voter_id,
                    kind.value,
                    target_id,
                    exc_info=True,
                )
            raise error from exc

        logger.debug(
            "Vote by %s on %s %s: %s delta=%d score=%d karma=%d",
            voter_id,
            kind.value,
            target_id,
            outcome.action.value,
            outcome.delta,
            outcome.score,
            outcome.author_karma,
        )
        return outcome

    def cast(self, request: VoteRequest) -> VoteOutcome:
        """Apply a validated :class:`VoteRequest`."""
        return self.cast_vote(
            request.voter_id,
            request.target_id,
            request.target_type,
            request.direction,
        )

    def cast_vote_with_retry(
        self,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType | str,
        direction: int | None,
    ) -> VoteOutcome:
        """Call :meth:`cast_vote`, retrying lock timeouts and deadlocks.

        Replaying the request is safe because the operation converges on the
        requested final direction.
        """
        attempts = self.settings.vote_max_retries
        for attempt in range(1, attempts + 1):
            try:
                return self.cast_vote(voter_id, target_id, target_type, direction)
            except RetryableVoteError:
                if attempt == attempts:
                    raise
                delay = self.settings.vote_retry_backoff_seconds * attempt
                logger.info(
                    "Retrying vote by %s on %s (attempt %d/%d) in %.3fs",
                    voter_id,
                    target_id,
                    attempt + 1,
                    attempts,
                    delay,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    def get_vote(
        self,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType | str,
    ) -> int | None:
        """Return the voter's current direction on a target, or ``None``."""
        kind = validate_target_type(target_type)
        try:
            with self.database.session() as session:
                vote = VoteRepository(session).find_vote(voter_id, target_id, kind)
                return vote.vote_type if vote is not None else None
        except SQLAlchemyError as exc:
            raise classify_db_error(exc) from exc

    def _apply(
        self,
        session: Session,
        voter_id: str,
        target_id: str,
        target_type: VoteTargetType,
        requested: int | None,
    ) -> VoteOutcome:
        votes = VoteRepository(session)
        content = ContentRepository(session)
        users = UserRepository(session)

        # Lock order: vote row, content row, author row.
        existing = votes.find_vote(voter_id, target_id, target_type, for_update=True)
        locked = content.lock_content_for_update(target_id, target_type)
        if existing is None:
            # Locking a missing vote row holds nothing, so a first vote by the
            # same voter may have committed while we waited on the content row.
            # Every vote write holds the content lock, so a plain read is stable.
            existing = votes.find_vote(voter_id, target_id, target_type, refresh=True)
        author_id = locked.author_id
        if author_id is None or not users.lock_author_for_update(author_id):
            raise AuthorNotFound(target_type.value, target_id, author_id)

        previous = existing.vote_type if existing is not None else None
        transition = plan_transition(previous, requested)

        if transition.action is VoteAction.INSERT:
            votes.insert_vote(voter_id, target_id, target_type, requested)
        elif transition.action is VoteAction.UPDATE:
            votes.update_vote_direction(existing, requested)
        elif transition.action is VoteAction.DELETE:
            votes.delete_vote(existing)

        if transition.delta != 0:
            score = content.apply_score_delta(target_id, target_type, transition.delta)
            karma = users.apply_karma_delta(author_id, transition.delta)
        else:
            score = content.get_score(target_id, target_type)
            karma = users.get_karma(author_id)

        return VoteOutcome(
            voter_id=voter_id,
            target_id=target_id,
            target_type=target_type,
            action=transition.action,
            previous_direction=previous,
            direction=requested,
            delta=transition.delta,
            score=score,
            author_id=author_id,
            author_karma=karma,
        )


def parse_vote_request(payload: dict[str, object]) -> VoteRequest:
    """Validate a raw payload into a :class:`VoteRequest`.

    Raises:
        InvalidDirection: If the direction field is invalid.
        InvalidTargetType: If the target type field is invalid.
    """
    try:
        return VoteRequest.model_validate(payload)
    except ValidationError as exc:
        fields = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
        if "direction" in fields:
            raise InvalidDirection(payload.get("direction")) from exc
        if "target_type" in fields:
            raise InvalidTargetType(payload.get("target_type")) from exc
        raise InvalidVoteRequest(f"Invalid vote request: {exc}") from exc

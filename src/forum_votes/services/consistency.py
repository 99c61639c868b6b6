# src/forum_votes/services/consistency.py
"""Read-only audit of the cached vote aggregates.

Recomputes every score and karma value from the stored votes and reports the
rows whose cached value disagrees. The audit never repairs anything: the vote
coordinator stays the only writer of vote-related fields.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from forum_votes.models import Comment, ForumVote, Post, User, VoteTargetType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreDrift:
    """A post or comment whose cached score differs from its votes."""

    target_type: VoteTargetType
    target_id: str
    cached: int
    expected: int


@dataclass(frozen=True)
class KarmaDrift:
    """A user whose cached karma differs from the votes on their content."""

    user_id: str
    cached: int
    expected: int


@dataclass(frozen=True)
class DuplicateVote:
    """More than one vote stored under the same identity key."""

    voter_id: str
    target_type: str
    target_id: str
    count: int


@dataclass
class ConsistencyReport:
    score_drifts: list[ScoreDrift] = field(default_factory=list)
    karma_drifts: list[KarmaDrift] = field(default_factory=list)
    duplicate_votes: list[DuplicateVote] = field(default_factory=list)
    orphaned_target_count: int = 0

    @property
    def is_consistent(self) -> bool:
        return not (self.score_drifts or self.karma_drifts or self.duplicate_votes)


def _vote_sums(session: Session, target_type: VoteTargetType) -> dict[str, int]:
    rows = session.execute(
        select(ForumVote.target_id, func.sum(ForumVote.vote_type))
        .where(ForumVote.target_type == target_type.value)
        .group_by(ForumVote.target_id)
    )
    return {target_id: int(total) for target_id, total in rows}


def audit_consistency(session: Session) -> ConsistencyReport:
    """Compare cached scores and karma against the stored votes."""
    report = ConsistencyReport()
    expected_karma: dict[str, int] = defaultdict(int)

    for target_type, model in (
        (VoteTargetType.POST, Post),
        (VoteTargetType.COMMENT, Comment),
    ):
        sums = _vote_sums(session, target_type)
        rows = session.execute(select(model.id, model.author_id, model.vote_score))
        for target_id, author_id, cached in rows:
            expected = sums.pop(target_id, 0)
            if cached != expected:
                report.score_drifts.append(
                    ScoreDrift(target_type, target_id, cached, expected)
                )
            if author_id is not None:
                expected_karma[author_id] += expected
        # Targets that still carry votes but no longer exist.
        report.orphaned_target_count += len(sums)

    for user_id, cached in session.execute(select(User.id, User.karma_points)):
        expected = expected_karma.get(user_id, 0)
        if cached != expected:
            report.karma_drifts.append(KarmaDrift(user_id, cached, expected))

    duplicates = session.execute(
        select(
            ForumVote.user_id,
            ForumVote.target_type,
            ForumVote.target_id,
            func.count(),
        )
        .group_by(ForumVote.user_id, ForumVote.target_type, ForumVote.target_id)
        .having(func.count() > 1)
    )
    report.duplicate_votes.extend(
        DuplicateVote(voter_id, target_type, target_id, count)
        for voter_id, target_type, target_id, count in duplicates
    )

    if report.is_consistent:
        logger.info("Vote aggregates consistent")
    else:
        logger.warning(
            "Vote aggregates drifted: %d scores, %d karma, %d duplicate keys",
            len(report.score_drifts),
            len(report.karma_drifts),
            len(report.duplicate_votes),
        )
    return report

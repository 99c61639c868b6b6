# tests/test_consistency.py
"""Tests for the read-only aggregate audit."""

from sqlalchemy import update

from forum_votes.models import ForumVote, Post, User
from forum_votes.services.consistency import audit_consistency


def test_audit_consistent_after_voting(
    coordinator, database, make_user, make_comment, author, post
) -> None:
    comment = make_comment(post, make_user("Commenter"))
    voters = [make_user() for _ in range(3)]
    coordinator.cast_vote(voters[0], post, "POST", 1)
    coordinator.cast_vote(voters[1], post, "POST", -1)
    coordinator.cast_vote(voters[2], comment, "COMMENT", 1)
    coordinator.cast_vote(voters[2], comment, "COMMENT", -1)

    with database.session() as session:
        report = audit_consistency(session)

    assert report.is_consistent
    assert report.score_drifts == []
    assert report.karma_drifts == []


def test_audit_detects_score_and_karma_drift(
    coordinator, database, make_user, author, post
) -> None:
    coordinator.cast_vote(make_user(), post, "POST", 1)
    with database.transaction() as session:
        session.execute(update(Post).where(Post.id == post).values(vote_score=7))
        session.execute(update(User).where(User.id == author).values(karma_points=-3))

    with database.session() as session:
        report = audit_consistency(session)

    assert not report.is_consistent
    [score_drift] = report.score_drifts
    assert (score_drift.target_id, score_drift.cached, score_drift.expected) == (post, 7, 1)
    [karma_drift] = report.karma_drifts
    assert (karma_drift.user_id, karma_drift.cached, karma_drift.expected) == (author, -3, 1)


def test_audit_counts_votes_on_missing_targets(database, make_user) -> None:
    voter = make_user()
    with database.transaction() as session:
        session.add(
            ForumVote(user_id=voter, target_id="gone", target_type="POST", vote_type=1)
        )

    with database.session() as session:
        report = audit_consistency(session)

    assert report.orphaned_target_count == 1
    assert report.is_consistent

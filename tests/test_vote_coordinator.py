# tests/test_vote_coordinator.py
"""Tests for casting, flipping and retracting votes."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import delete, select

from forum_votes.models import ForumVote, Post, User, VoteTargetType
from forum_votes.services.errors import (
    AuthorNotFound,
    InvalidDirection,
    InvalidTargetType,
    InvalidVoteRequest,
    TargetNotFound,
)
from forum_votes.services.transitions import VoteAction
from forum_votes.services.vote_coordinator import parse_vote_request


def test_reference_scenario(coordinator, make_user, post, read_state) -> None:
    """Walk a post through upvote, flip, retract and two concurrent upvotes."""
    voter_b = make_user("Bob")
    voter_c = make_user("Carol")
    voter_d = make_user("Dan")

    outcome = coordinator.cast_vote(voter_b, post, "POST", 1)
    assert outcome.action is VoteAction.INSERT
    assert read_state(post) == (1, 1)

    outcome = coordinator.cast_vote(voter_b, post, "POST", -1)
    assert outcome.delta == -2
    assert read_state(post) == (-1, -1)

    outcome = coordinator.cast_vote(voter_b, post, "POST", None)
    assert outcome.delta == 1
    assert read_state(post) == (0, 0)

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(coordinator.cast_vote_with_retry, voter, post, "POST", 1)
            for voter in (voter_c, voter_d)
        ]
        deltas = sorted(future.result().delta for future in futures)

    assert deltas == [1, 1]
    assert read_state(post) == (2, 2)


def test_outcome_reports_committed_aggregates(coordinator, make_user, author, post) -> None:
    voter = make_user()
    outcome = coordinator.cast_vote(voter, post, VoteTargetType.POST, 1)

    assert outcome.voter_id == voter
    assert outcome.target_id == post
    assert outcome.target_type is VoteTargetType.POST
    assert outcome.previous_direction is None
    assert outcome.direction == 1
    assert outcome.score == 1
    assert outcome.author_id == author
    assert outcome.author_karma == 1
    assert outcome.changed


def test_idempotent_replay(coordinator, make_user, post, read_state, count_votes) -> None:
    voter = make_user()
    coordinator.cast_vote(voter, post, "POST", 1)

    replay = coordinator.cast_vote(voter, post, "POST", 1)

    assert replay.action is VoteAction.NOOP
    assert replay.delta == 0
    assert not replay.changed
    assert read_state(post) == (1, 1)
    assert count_votes(post) == 1


def test_flip_applies_double_delta_once(coordinator, make_user, post, read_state) -> None:
    voter = make_user()
    coordinator.cast_vote(voter, post, "POST", 1)

    flip = coordinator.cast_vote(voter, post, "POST", -1)

    assert flip.action is VoteAction.UPDATE
    assert flip.previous_direction == 1
    assert flip.delta == -2
    assert read_state(post) == (-1, -1)
    assert coordinator.get_vote(voter, post, "POST") == -1


@pytest.mark.parametrize(("initial", "expected_delta"), [(1, -1), (-1, 1)])
def test_retraction(
    coordinator, make_user, post, read_state, count_votes, initial, expected_delta
) -> None:
    voter = make_user()
    coordinator.cast_vote(voter, post, "POST", initial)

    outcome = coordinator.cast_vote(voter, post, "POST", None)

    assert outcome.action is VoteAction.DELETE
    assert outcome.delta == expected_delta
    assert read_state(post) == (0, 0)
    assert count_votes(post) == 0
    assert coordinator.get_vote(voter, post, "POST") is None


def test_retracting_missing_vote_is_noop(coordinator, make_user, post, read_state) -> None:
    voter = make_user()

    outcome = coordinator.cast_vote(voter, post, "POST", None)

    assert outcome.action is VoteAction.NOOP
    assert outcome.delta == 0
    assert read_state(post) == (0, 0)


def test_comment_votes_feed_comment_author_karma(
    coordinator, make_user, make_comment, author, post, read_state
) -> None:
    commenter = make_user("Cora Commenter")
    comment = make_comment(post, commenter)
    voter = make_user()

    coordinator.cast_vote(voter, comment, "COMMENT", 1)

    assert read_state(comment, VoteTargetType.COMMENT) == (1, 1)
    # The post and its author are untouched.
    assert read_state(post) == (0, 0)


def test_same_id_under_other_type_is_a_different_target(
    coordinator, make_user, make_comment, post
) -> None:
    voter = make_user()
    coordinator.cast_vote(voter, post, "POST", 1)

    with pytest.raises(TargetNotFound):
        coordinator.cast_vote(voter, post, "COMMENT", 1)
    assert coordinator.get_vote(voter, post, "COMMENT") is None


def test_karma_accumulates_across_authored_content(
    coordinator, make_user, make_post, make_comment, author, read_state
) -> None:
    first = make_post(author)
    second = make_post(author, title="Offsite")
    comment = make_comment(first, author)
    voters = [make_user() for _ in range(3)]

    coordinator.cast_vote(voters[0], first, "POST", 1)
    coordinator.cast_vote(voters[1], second, "POST", 1)
    coordinator.cast_vote(voters[2], comment, "COMMENT", -1)

    score, karma = read_state(first)
    assert score == 1
    assert karma == 1


def test_self_vote_counts_toward_own_karma(coordinator, author, post, read_state) -> None:
    coordinator.cast_vote(author, post, "POST", 1)
    assert read_state(post) == (1, 1)


@pytest.mark.parametrize("direction", [0, 2, -2, True, False, "1", 1.0])
def test_invalid_direction_rejected_before_locking(coordinator, make_user, post, direction) -> None:
    voter = make_user()

    class _NoTransaction:
        def transaction(self):  # pragma: no cover - must not be reached
            raise AssertionError("transaction opened for an invalid request")

    coordinator.database = _NoTransaction()
    with pytest.raises(InvalidDirection):
        coordinator.cast_vote(voter, post, "POST", direction)


def test_invalid_target_type_rejected(coordinator, make_user, post) -> None:
    with pytest.raises(InvalidTargetType):
        coordinator.cast_vote(make_user(), post, "SPACE", 1)


def test_unknown_target_has_no_side_effects(
    coordinator, database, make_user, author, read_state, post
) -> None:
    voter = make_user()

    with pytest.raises(TargetNotFound):
        coordinator.cast_vote(voter, "00000000-0000-0000-0000-000000000000", "POST", 1)

    with database.session() as session:
        assert session.execute(select(ForumVote)).first() is None
    assert read_state(post) == (0, 0)


def test_post_without_author_is_rejected(coordinator, make_user, make_post, count_votes) -> None:
    orphan = make_post(None)

    with pytest.raises(AuthorNotFound):
        coordinator.cast_vote(make_user(), orphan, "POST", 1)
    assert count_votes(orphan) == 0


def test_deleted_author_is_rejected(
    coordinator, database, make_user, make_post, count_votes
) -> None:
    departed = make_user("Former Employee")
    post_id = make_post(departed)
    with database.transaction() as session:
        session.execute(delete(User).where(User.id == departed))

    with pytest.raises(AuthorNotFound) as excinfo:
        coordinator.cast_vote(make_user(), post_id, "POST", 1)

    assert excinfo.value.author_id is None
    assert count_votes(post_id) == 0
    with database.session() as session:
        assert session.get(Post, post_id).vote_score == 0


def test_cast_accepts_validated_request(coordinator, make_user, post, read_state) -> None:
    voter = make_user()
    request = parse_vote_request(
        {"voter_id": voter, "target_id": post, "target_type": "POST", "direction": -1}
    )

    outcome = coordinator.cast(request)

    assert outcome.delta == -1
    assert read_state(post) == (-1, -1)


@pytest.mark.parametrize(
    ("payload", "error"),
    [
        ({"voter_id": "u", "target_id": "t", "target_type": "POST", "direction": 3}, InvalidDirection),
        ({"voter_id": "u", "target_id": "t", "target_type": "POST", "direction": True}, InvalidDirection),
        ({"voter_id": "u", "target_id": "t", "target_type": "PAGE", "direction": 1}, InvalidTargetType),
        ({"voter_id": "", "target_id": "t", "target_type": "POST", "direction": 1}, InvalidVoteRequest),
    ],
)
def test_parse_vote_request_errors(payload, error) -> None:
    with pytest.raises(error):
        parse_vote_request(payload)


def test_parse_vote_request_accepts_null_direction() -> None:
    request = parse_vote_request(
        {"voter_id": "u", "target_id": "t", "target_type": "COMMENT", "direction": None}
    )
    assert request.direction is None
    assert request.target_type is VoteTargetType.COMMENT

# tests/test_transitions.py
"""Tests for the vote state-transition table."""

import pytest

from forum_votes.services.transitions import VoteAction, plan_transition


@pytest.mark.parametrize(
    ("previous", "requested", "action", "delta"),
    [
        (None, None, VoteAction.NOOP, 0),
        (None, 1, VoteAction.INSERT, 1),
        (None, -1, VoteAction.INSERT, -1),
        (1, None, VoteAction.DELETE, -1),
        (-1, None, VoteAction.DELETE, 1),
        (1, 1, VoteAction.NOOP, 0),
        (-1, -1, VoteAction.NOOP, 0),
        (1, -1, VoteAction.UPDATE, -2),
        (-1, 1, VoteAction.UPDATE, 2),
    ],
)
def test_transition_table(previous, requested, action, delta) -> None:
    transition = plan_transition(previous, requested)
    assert transition.action is action
    assert transition.delta == delta
    assert transition.previous == previous
    assert transition.requested == requested


def test_transition_is_pure() -> None:
    """Resolving the same pair twice gives equal results."""
    assert plan_transition(1, -1) == plan_transition(1, -1)

# src/forum_votes/services/transitions.py
"""State-transition table for a single vote operation.

A vote request is resolved purely from the caller's prior direction and the
requested one. The resulting delta is applied to both the target's score and
its author's karma, so it must never be recomputed from the stored votes.

    prior  requested  action   delta
    -----  ---------  ------   -----
    none   None       NOOP     0
    none   d          INSERT   d
    d      None       DELETE   -d
    d      d          NOOP     0
    d      d'         UPDATE   d' - d
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class VoteAction(str, enum.Enum):
    """Mutation a vote request performs on the vote store."""

    NOOP = "NOOP"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class VoteTransition:
    """Outcome of resolving a request against the prior vote."""

    action: VoteAction
    delta: int
    previous: int | None
    requested: int | None


def plan_transition(previous: int | None, requested: int | None) -> VoteTransition:
    """Return the action and delta for moving from ``previous`` to ``requested``.

    Both arguments must already be validated as ``1``, ``-1`` or ``None``.
    """
    if previous is None:
        if requested is None:
            return VoteTransition(VoteAction.NOOP, 0, previous, requested)
        return VoteTransition(VoteAction.INSERT, requested, previous, requested)

    if requested is None:
        return VoteTransition(VoteAction.DELETE, -previous, previous, requested)
    if requested == previous:
        # Idempotent replay of the same request.
        return VoteTransition(VoteAction.NOOP, 0, previous, requested)
    return VoteTransition(VoteAction.UPDATE, requested - previous, previous, requested)

"""Operator command line for the forum vote engine."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from forum_votes.core.settings import Settings
from forum_votes.db.session import Database
from forum_votes.services.consistency import audit_consistency
from forum_votes.services.errors import VoteError
from forum_votes.services.vote_coordinator import VoteCoordinator, parse_vote_request

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_RETRYABLE = 75  # EX_TEMPFAIL
EXIT_INCONSISTENT = 2

_DIRECTION_CHOICES = {"up": 1, "down": -1, "none": None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="forum-votes",
        description="Cast votes and audit score/karma consistency",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to effective settings URL)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the forum tables if they are missing")

    cast = sub.add_parser("cast", help="Cast, flip or retract a vote")
    cast.add_argument("voter_id")
    cast.add_argument("target_type", choices=["POST", "COMMENT"])
    cast.add_argument("target_id")
    cast.add_argument("direction", choices=sorted(_DIRECTION_CHOICES))
    cast.add_argument(
        "--no-retry",
        action="store_true",
        help="Fail immediately on lock timeouts and deadlocks.",
    )

    show = sub.add_parser("show", help="Show a voter's current vote on a target")
    show.add_argument("voter_id")
    show.add_argument("target_type", choices=["POST", "COMMENT"])
    show.add_argument("target_id")

    sub.add_parser("audit", help="Report score and karma drift")
    return parser


def _cast(coordinator: VoteCoordinator, args: argparse.Namespace) -> int:
    request = parse_vote_request(
        {
            "voter_id": args.voter_id,
            "target_id": args.target_id,
            "target_type": args.target_type,
            "direction": _DIRECTION_CHOICES[args.direction],
        }
    )
    if args.no_retry:
        outcome = coordinator.cast(request)
    else:
        outcome = coordinator.cast_vote_with_retry(
            request.voter_id,
            request.target_id,
            request.target_type,
            request.direction,
        )
    print(outcome.model_dump_json())
    return EXIT_OK


def _show(coordinator: VoteCoordinator, args: argparse.Namespace) -> int:
    direction = coordinator.get_vote(args.voter_id, args.target_id, args.target_type)
    print(json.dumps({"direction": direction}))
    return EXIT_OK


def _audit(database: Database) -> int:
    with database.session() as session:
        report = audit_consistency(session)
    for drift in report.score_drifts:
        print(
            f"[audit] score {drift.target_type.value} {drift.target_id}: "
            f"cached={drift.cached} expected={drift.expected}"
        )
    for drift in report.karma_drifts:
        print(f"[audit] karma {drift.user_id}: cached={drift.cached} expected={drift.expected}")
    for dup in report.duplicate_votes:
        print(
            f"[audit] duplicate vote {dup.voter_id} on {dup.target_type} "
            f"{dup.target_id}: {dup.count} rows"
        )
    if report.orphaned_target_count:
        print(f"[audit] {report.orphaned_target_count} deleted targets still carry votes")
    if not report.is_consistent:
        return EXIT_INCONSISTENT
    print("[audit] consistent")
    return EXIT_OK


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    database = (
        Database(args.url, lock_timeout_seconds=settings.vote_lock_timeout_seconds)
        if args.url
        else Database.from_settings(settings)
    )
    with database:
        coordinator = VoteCoordinator(database, settings)
        try:
            if args.command == "init-db":
                database.create_tables()
                print("[forum-votes] tables ready")
                return EXIT_OK
            if args.command == "cast":
                return _cast(coordinator, args)
            if args.command == "show":
                return _show(coordinator, args)
            return _audit(database)
        except VoteError as exc:
            print(f"[forum-votes] ERROR: {exc}", file=sys.stderr)
            return EXIT_RETRYABLE if exc.retryable else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import os

from alembic import command
from alembic.config import Config

from forum_votes.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def build_config(database_url: str | None = None) -> Config:
    """Return an Alembic config pointed at the project's migrations folder."""
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    # Sync URL for Alembic (psycopg driver)
    cfg.set_main_option("sqlalchemy.url", database_url or settings.database_url_sync)
    return cfg


def run_upgrade(revision: str = "head", database_url: str | None = None) -> None:
    command.upgrade(build_config(database_url), revision)


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply forum vote schema migrations")
    parser.add_argument("--revision", default="head", help="Target revision (default: head)")
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to effective settings URL)",
    )
    args = parser.parse_args()
    run_upgrade(args.revision, args.url)


if __name__ == "__main__":
    main()

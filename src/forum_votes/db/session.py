"""Database engine and session lifecycle.

The engine is owned by an explicit :class:`Database` handle that the process
entry point constructs, injects into the services that need it, and disposes
on shutdown. Nothing in this package creates an engine lazily on first use.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from forum_votes.core.settings import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


class Database:
    """Connection pool handle with an explicit init/teardown lifecycle."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        lock_timeout_seconds: float = 5.0,
        pool_size: int | None = None,
        max_overflow: int | None = None,
    ) -> None:
        self.url = make_url(url)
        self.lock_timeout_seconds = lock_timeout_seconds
        self.engine = create_engine(
            self.url,
            pool_pre_ping=True,
            echo=echo,
            **self._engine_options(pool_size, max_overflow),
        )
        if self.is_sqlite:
            _install_sqlite_locking(self.engine)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
        logger.debug("Database handle created for %s", self.url.render_as_string())

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        """Build a handle from application settings."""
        return cls(
            settings.database_url_sync,
            echo=settings.sql_debug,
            lock_timeout_seconds=settings.vote_lock_timeout_seconds,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
        )

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @property
    def is_sqlite(self) -> bool:
        return self.dialect_name == "sqlite"

    @property
    def lock_timeout_ms(self) -> int:
        """Return the lock timeout in whole milliseconds."""
        return max(1, int(self.lock_timeout_seconds * 1000))

    def _engine_options(
        self,
        pool_size: int | None,
        max_overflow: int | None,
    ) -> dict[str, Any]:
        if self.url.get_backend_name() == "sqlite":
            # The busy timeout doubles as the lock wait bound on SQLite.
            return {
                "connect_args": {
                    "check_same_thread": False,
                    "timeout": self.lock_timeout_seconds,
                }
            }
        options: dict[str, Any] = {}
        if pool_size is not None:
            options["pool_size"] = pool_size
        if max_overflow is not None:
            options["max_overflow"] = max_overflow
        return options

    def session(self) -> Session:
        """Return a new, unbound-to-request session."""
        return self._session_factory()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Yield a session inside a transaction that commits or rolls back as a unit."""
        with self._session_factory() as session, session.begin():
            self.apply_lock_timeout(session)
            yield session

    def apply_lock_timeout(self, session: Session) -> None:
        """Bound lock waits for the current transaction where the engine supports it."""
        if self.dialect_name == "postgresql":
            session.execute(text(f"SET LOCAL lock_timeout = {self.lock_timeout_ms}"))
        elif self.dialect_name in {"mysql", "mariadb"}:
            # InnoDB only accepts whole seconds.
            seconds = max(1, round(self.lock_timeout_seconds))
            session.execute(text(f"SET SESSION innodb_lock_wait_timeout = {seconds}"))

    def create_tables(self) -> None:
        """Create all database tables."""
        import forum_votes.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables."""
        import forum_votes.models  # noqa: F401

        Base.metadata.drop_all(bind=self.engine)

    def close(self) -> None:
        """Dispose of every pooled connection."""
        self.engine.dispose()
        logger.debug("Database handle disposed")

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _install_sqlite_locking(engine: Engine) -> None:
    """Serialize SQLite writers by taking the write lock when a transaction begins.

    SQLite has no row-level locks and ignores ``FOR UPDATE``; ``BEGIN IMMEDIATE``
    gives the read-then-write vote transaction the same exclusivity.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # Hand transaction control to the "begin" hook below.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

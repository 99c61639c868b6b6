# tests/conftest.py
from __future__ import annotations

from collections.abc import Callable, Iterator
from itertools import count
from pathlib import Path

import pytest
from sqlalchemy import select

from forum_votes.core.settings import Settings
from forum_votes.db.session import Database
from forum_votes.models import Comment, ForumVote, Post, User, VoteTargetType
from forum_votes.services.vote_coordinator import VoteCoordinator

_USER_COUNTER = count(1)


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    # A file database so that concurrent connections share state.
    return f"sqlite:///{tmp_path / 'forum.db'}"


@pytest.fixture()
def database(database_url: str) -> Iterator[Database]:
    db = Database(database_url, lock_timeout_seconds=15.0)
    db.create_tables()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def test_settings() -> Settings:
    """Provide settings with a fast retry policy."""
    return Settings(
        vote_max_retries=3,
        vote_retry_backoff_seconds=0.0,
        vote_lock_timeout_seconds=15.0,
    )


@pytest.fixture()
def coordinator(database: Database, test_settings: Settings) -> VoteCoordinator:
    return VoteCoordinator(database, test_settings)


@pytest.fixture()
def make_user(database: Database) -> Callable[..., str]:
    """Return a factory persisting a user and returning its id."""

    def _make_user(name: str | None = None, karma: int = 0) -> str:
        number = next(_USER_COUNTER)
        with database.transaction() as session:
            user = User(
                full_name=name or f"User {number}",
                email=f"user{number}@example.com",
                karma_points=karma,
            )
            session.add(user)
            session.flush()
            return user.id

    return _make_user


@pytest.fixture()
def make_post(database: Database) -> Callable[..., str]:
    """Return a factory persisting a post and returning its id."""

    def _make_post(author_id: str | None, title: str = "Quarterly planning") -> str:
        with database.transaction() as session:
            post = Post(author_id=author_id, title=title, content="Agenda and notes")
            session.add(post)
            session.flush()
            return post.id

    return _make_post


@pytest.fixture()
def make_comment(database: Database) -> Callable[..., str]:
    """Return a factory persisting a comment and returning its id."""

    def _make_comment(post_id: str, author_id: str | None, parent_id: str | None = None) -> str:
        with database.transaction() as session:
            comment = Comment(
                post_id=post_id,
                author_id=author_id,
                parent_id=parent_id,
                content="Sounds good to me",
            )
            session.add(comment)
            session.flush()
            return comment.id

    return _make_comment


@pytest.fixture()
def author(make_user: Callable[..., str]) -> str:
    return make_user("Alice Author")


@pytest.fixture()
def post(make_post: Callable[..., str], author: str) -> str:
    return make_post(author)


@pytest.fixture()
def read_state(database: Database) -> Callable[..., tuple[int, int]]:
    """Return a reader for ``(score, karma)`` of a target and its author."""

    def _read(target_id: str, target_type: VoteTargetType = VoteTargetType.POST) -> tuple[int, int]:
        model = Post if target_type is VoteTargetType.POST else Comment
        with database.session() as session:
            score, author_id = session.execute(
                select(model.vote_score, model.author_id).where(model.id == target_id)
            ).one()
            karma = session.execute(
                select(User.karma_points).where(User.id == author_id)
            ).scalar_one()
        return score, karma

    return _read


@pytest.fixture()
def count_votes(database: Database) -> Callable[..., int]:
    """Return a counter of stored votes on a target."""

    def _count(target_id: str) -> int:
        with database.session() as session:
            return len(
                session.execute(
                    select(ForumVote.id).where(ForumVote.target_id == target_id)
                ).all()
            )

    return _count

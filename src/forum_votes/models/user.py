# src/forum_votes/models/user.py
"""SQLAlchemy model for portal users and their forum karma."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from forum_votes.db.session import Base
from forum_votes.db.time import utcnow


class User(Base):
    """Portal user as seen by the forum.

    Accounts are provisioned elsewhere; the forum only reads identity and
    maintains ``karma_points``.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Net signed votes received across everything this user authored.
    karma_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

"""Database configuration and utilities."""

from .session import Base, Database

__all__ = ["Base", "Database"]

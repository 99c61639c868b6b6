# src/forum_votes/services/__init__.py
"""Business logic services for the forum vote engine."""

"""
Pydantic schemas for vote requests and outcomes.

These schemas define the structure of data crossing the engine boundary.
"""

from .vote import VoteOutcome, VoteRequest

__all__ = ["VoteOutcome", "VoteRequest"]

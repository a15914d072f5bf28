"""Data access layer."""

from .round_repo import RoundRepository

__all__ = ["RoundRepository"]

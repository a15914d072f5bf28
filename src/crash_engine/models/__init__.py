# src/crash_engine/models/__init__.py
"""SQLAlchemy models for the crash engine."""

from .round import RoundRecord

__all__ = ["RoundRecord"]

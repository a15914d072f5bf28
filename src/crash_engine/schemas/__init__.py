# src/crash_engine/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .generation import TriggerResponse
from .round import RoundResponse, RoundSummary

__all__ = ["RoundResponse", "RoundSummary", "TriggerResponse"]

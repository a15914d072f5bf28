"""Schemas for the generation control endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class TriggerResponse(BaseModel):
    """Outcome of a manual trigger or forced generation."""

    success: bool
    outcome: str
    message: str
    start_round: int | None = Field(default=None, serialization_alias="startRound")
    end_round: int | None = Field(default=None, serialization_alias="endRound")
    notified: bool = False

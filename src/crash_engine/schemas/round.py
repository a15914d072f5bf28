"""Schemas for persisted rounds."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class RoundSummary(BaseModel):
    """Round number and multiplier, as served to clients."""

    model_config = ConfigDict(from_attributes=True)

    round_number: int
    multiplier: float


class RoundResponse(RoundSummary):
    """Full round row including its creation time."""

    created_at: datetime | None = None

# src/crash_engine/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .generation import router as generation_router
from .multipliers import router as multipliers_router

__all__ = ["generation_router", "multipliers_router"]

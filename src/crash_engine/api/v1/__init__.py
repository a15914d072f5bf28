# src/crash_engine/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import generation_router, multipliers_router

__all__ = ["generation_router", "multipliers_router"]

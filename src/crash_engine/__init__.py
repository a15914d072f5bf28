"""Outcome generation engine for a multiplier crash game."""

__version__ = "0.1.0"

"""Core configuration for the crash engine."""

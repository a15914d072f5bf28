"""HTTP API for the crash engine."""

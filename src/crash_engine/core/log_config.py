"""Logging setup for the service process."""

from __future__ import annotations

import logging

from crash_engine.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once per process.

    Args:
        level: Optional level name overriding ``LOG_LEVEL``.
    """
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)
    # httpx logs every request at INFO; the notifier already reports outcomes.
    logging.getLogger("httpx").setLevel(logging.WARNING)

"""Persistence collaborator used by the batch controller.

Each call opens its own short-lived session so the controller can run the
calls in a worker thread without holding any state lock across I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crash_engine.db.session import SessionLocal
from crash_engine.models.round import RoundRecord
from crash_engine.repositories.round_repo import RoundRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RoundStoreError(RuntimeError):
    """Raised when the persistence layer cannot complete an operation."""


@dataclass(frozen=True)
class StoredRound:
    """Detached, immutable view of a persisted round."""

    round_number: int
    multiplier: float
    created_at: datetime | None

    @classmethod
    def from_record(cls, record: RoundRecord) -> StoredRound:
        return cls(
            round_number=int(record.round_number),
            multiplier=float(record.multiplier),
            created_at=record.created_at,
        )


def _detach(record: RoundRecord | None) -> StoredRound | None:
    return StoredRound.from_record(record) if record is not None else None


class SqlRoundStore:
    """SQLAlchemy-backed implementation of the round persistence collaborator."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def insert_batch(self, rows: Sequence[Mapping[str, float | int]]) -> int:
        """Insert all rows in one transaction; either all land or none do."""
        with self._session_factory() as db:
            try:
                inserted = RoundRepository(db).insert_batch(rows)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise RoundStoreError(f"Batch insert failed: {exc}") from exc
        logger.debug("Committed %d rounds", inserted)
        return inserted

    def max_round_number(self) -> int | None:
        return self._read(lambda repo: repo.max_round_number())

    def range_exists(self, start: int, end: int) -> bool:
        """Return True if any round in ``[start, end]`` is already stored."""
        return self._read(lambda repo: repo.count_in_range(start, end)) > 0

    def get_by_round(self, round_number: int) -> StoredRound | None:
        return self._read(lambda repo: _detach(repo.get_by_round(round_number)))

    def get_range(self, start: int, end: int) -> list[StoredRound]:
        return self._read(
            lambda repo: [StoredRound.from_record(record) for record in repo.get_range(start, end)]
        )

    def get_latest(self) -> StoredRound | None:
        return self._read(lambda repo: _detach(repo.get_latest()))

    def _read(self, query: Callable[[RoundRepository], T]) -> T:
        with self._session_factory() as db:
            try:
                return query(RoundRepository(db))
            except SQLAlchemyError as exc:
                raise RoundStoreError(f"Round query failed: {exc}") from exc

"""Data access helpers for working with persisted rounds."""
from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import func, insert, select
from sqlalchemy.orm import Session

from crash_engine.db.time import utcnow
from crash_engine.models.round import RoundRecord

__all__ = ["RoundRepository"]


class RoundRepository:
    """Thin wrapper around database access for round entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def insert_batch(self, rows: Iterable[Mapping[str, float | int]]) -> int:
        """Stage a batch of rows in the current transaction.

        The caller owns the transaction; nothing is committed here.

        Returns:
            Number of rows staged.
        """
        created_at = utcnow()
        values = [
            {
                "round_number": int(row["round_number"]),
                "multiplier": float(row["multiplier"]),
                "created_at": created_at,
            }
            for row in rows
        ]
        if not values:
            return 0
        self.session.execute(insert(RoundRecord), values)
        return len(values)

    def max_round_number(self) -> int | None:
        """Return the highest persisted round number, or None when empty."""
        return self.session.execute(select(func.max(RoundRecord.round_number))).scalar()

    def count_in_range(self, start: int, end: int) -> int:
        """Return the number of rows whose round falls in ``[start, end]``."""
        stmt = select(func.count()).select_from(RoundRecord).where(
            RoundRecord.round_number >= start,
            RoundRecord.round_number <= end,
        )
        return int(self.session.execute(stmt).scalar() or 0)

    def get_by_round(self, round_number: int) -> RoundRecord | None:
        """Return the row for a round number."""
        result = self.session.execute(
            select(RoundRecord).where(RoundRecord.round_number == round_number)
        )
        return result.scalars().first()

    def get_range(self, start: int, end: int) -> list[RoundRecord]:
        """Return rows in ``[start, end]`` ordered by round number."""
        result = self.session.execute(
            select(RoundRecord)
            .where(RoundRecord.round_number >= start, RoundRecord.round_number <= end)
            .order_by(RoundRecord.round_number.asc())
        )
        return list(result.scalars())

    def get_latest(self) -> RoundRecord | None:
        """Return the most recently inserted row."""
        result = self.session.execute(
            select(RoundRecord).order_by(RoundRecord.id.desc()).limit(1)
        )
        return result.scalars().first()

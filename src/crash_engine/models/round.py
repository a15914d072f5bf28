# src/crash_engine/models/round.py
"""SQLAlchemy model for persisted game rounds."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, Integer
from sqlalchemy.orm import Mapped, mapped_column

from crash_engine.db.session import Base
from crash_engine.db.time import utcnow


class RoundRecord(Base):
    """One game outcome, immutable once written.

    Rows are only ever inserted in whole batches; ``round_number`` is unique
    across all time so a retried batch can never duplicate a round.
    """

    __tablename__ = "multipliers"

    # Surrogate key; doubles as insertion order for "latest" queries.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    round_number: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

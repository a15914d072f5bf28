"""Bounded rolling window of recently emitted multipliers."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator


class HistoryWindow:
    """Append-only window keeping the most recent ``capacity`` values.

    Oldest entries are evicted first. The window is never persisted; it only
    feeds the windowed statistics used by pattern breaking and streak relief.
    """

    def __init__(self, capacity: int, values: Iterable[float] = ()) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._values: deque[float] = deque(values, maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._values.maxlen or 0

    def append(self, value: float) -> None:
        self._values.append(value)

    def last(self, count: int) -> list[float]:
        """Return up to ``count`` most recent values, oldest first."""
        if count <= 0:
            return []
        return list(self._values)[-count:]

    def snapshot(self) -> tuple[float, ...]:
        return tuple(self._values)

    def restore(self, values: Iterable[float]) -> None:
        self._values.clear()
        self._values.extend(values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[float]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"HistoryWindow(capacity={self.capacity}, size={len(self)})"

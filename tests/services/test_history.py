"""Tests for the rolling history window."""

import pytest

from crash_engine.services.history import HistoryWindow


def test_window_never_exceeds_capacity() -> None:
    window = HistoryWindow(capacity=5)
    for value in range(1, 13):
        window.append(float(value))
        assert len(window) <= 5

    assert window.snapshot() == (8.0, 9.0, 10.0, 11.0, 12.0)


def test_last_returns_most_recent_oldest_first() -> None:
    window = HistoryWindow(capacity=10, values=[1.0, 2.0, 3.0, 4.0])

    assert window.last(2) == [3.0, 4.0]
    assert window.last(10) == [1.0, 2.0, 3.0, 4.0]
    assert window.last(0) == []


def test_restore_replaces_contents() -> None:
    window = HistoryWindow(capacity=3, values=[1.0, 2.0])
    saved = window.snapshot()
    window.append(5.0)
    window.append(6.0)

    window.restore(saved)

    assert list(window) == [1.0, 2.0]


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        HistoryWindow(capacity=0)

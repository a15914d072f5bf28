"""Streak relief: override values when recent history shows adverse runs.

Relief tiers are an ordered list of rules evaluated most severe first. The
first rule that returns a value wins; remaining rules are skipped.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from crash_engine.services.generation_config import GenerationConfig, ReliefRange
from crash_engine.services.history import HistoryWindow
from crash_engine.services.rng import RandomSource

logger = logging.getLogger(__name__)

# Tolerance when comparing rounded history values with the floor.
FLOOR_EPSILON = 1e-9


@dataclass(frozen=True)
class WindowStats:
    """Trailing-window statistics derived from the history window."""

    consecutive_floor: int
    consecutive_low: int
    long_window_size: int
    long_window_low_count: int

    @property
    def long_window_low_ratio(self) -> float:
        if self.long_window_size == 0:
            return 0.0
        return self.long_window_low_count / self.long_window_size


def _trailing_run(values: Sequence[float], predicate: Callable[[float], bool]) -> int:
    run = 0
    for value in reversed(values):
        if not predicate(value):
            break
        run += 1
    return run


def compute_window_stats(history: HistoryWindow, config: GenerationConfig) -> WindowStats:
    values = history.snapshot()
    is_floor = lambda v: v <= config.min_multiplier + FLOOR_EPSILON  # noqa: E731
    is_low = lambda v: v <= config.low_threshold  # noqa: E731
    long_window = values[-config.long_window:] if config.long_window > 0 else ()
    return WindowStats(
        consecutive_floor=_trailing_run(values, is_floor),
        consecutive_low=_trailing_run(values, is_low),
        long_window_size=len(long_window),
        long_window_low_count=sum(1 for v in long_window if is_low(v)),
    )


@dataclass(frozen=True)
class ReliefRule:
    """A named relief tier.

    ``applies`` is a pure predicate over the pending value and the window
    statistics; when it holds, the value is replaced by a draw from ``relief``.
    """

    name: str
    applies: Callable[[float, WindowStats], bool]
    relief: ReliefRange

    def __call__(self, value: float, stats: WindowStats, rng: RandomSource) -> float | None:
        if not self.applies(value, stats):
            return None
        return rng.uniform(self.relief.low, self.relief.high)


def build_relief_rules(config: GenerationConfig) -> list[ReliefRule]:
    """Return the relief tiers in priority order."""

    def floor_run(value: float, stats: WindowStats) -> bool:
        return stats.consecutive_floor >= config.floor_streak

    def low_run(value: float, stats: WindowStats) -> bool:
        return stats.consecutive_low >= config.low_streak

    def low_ratio(value: float, stats: WindowStats) -> bool:
        return (
            value <= config.low_threshold
            and stats.long_window_size >= config.long_window
            and stats.long_window_low_ratio >= config.long_window_low_ratio
        )

    return [
        ReliefRule("floor_streak", floor_run, config.floor_relief),
        ReliefRule("low_streak", low_run, config.low_relief),
        ReliefRule("long_window_low_ratio", low_ratio, config.long_window_relief),
    ]


class StreakCorrector:
    """Final pipeline stage: relief override, rounding and history append."""

    def __init__(
        self,
        config: GenerationConfig,
        rng: RandomSource,
        rules: list[ReliefRule] | None = None,
    ) -> None:
        self.config = config
        self._rng = rng
        self.rules = rules if rules is not None else build_relief_rules(config)
        self.rule_hits: Counter[str] = Counter()
        self.last_rule: str | None = None

    def correct(self, value: float, history: HistoryWindow) -> float:
        stats = compute_window_stats(history, self.config)
        self.last_rule = None
        for rule in self.rules:
            replacement = rule(value, stats, self._rng)
            if replacement is not None:
                logger.debug("Relief tier %s replaced %.4f with %.4f", rule.name, value, replacement)
                value = replacement
                self.last_rule = rule.name
                self.rule_hits[rule.name] += 1
                break

        final = round(value, self.config.precision)
        history.append(final)
        return final

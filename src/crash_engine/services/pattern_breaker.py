"""Perturbations that keep the outcome stream from looking periodic."""

from __future__ import annotations

import math

from crash_engine.services.generation_config import GenerationConfig
from crash_engine.services.history import HistoryWindow
from crash_engine.services.rng import RandomSource


class PatternBreaker:
    """Apply round-indexed forcing, high-value damping and jitter to a raw draw."""

    def __init__(self, config: GenerationConfig, rng: RandomSource) -> None:
        self.config = config
        self._rng = rng

    def perturb(self, raw: float, round_number: int, history: HistoryWindow) -> float:
        forced = self._forced_value(round_number)
        if forced is not None:
            return self._bound(forced)

        value = raw
        if (
            value > self.config.damping_threshold
            and self._recent_highs(history) >= self.config.damping_min_count
        ):
            factor = self.config.damping_factor
            value *= self._rng.uniform(factor.low, factor.high)

        if self.config.jitter > 0:
            value += self._rng.uniform(-self.config.jitter, self.config.jitter)
        value += self.config.oscillation_amplitude * math.sin(
            round_number * self.config.oscillation_frequency
        )
        return self._bound(value)

    def _forced_value(self, round_number: int) -> float | None:
        # First rule that both matches and fires wins.
        for rule in self.config.modulo_rules:
            if round_number % rule.modulus != 0:
                continue
            if self._rng.random() < rule.probability:
                return self._rng.uniform(rule.low, rule.high)
        return None

    def _recent_highs(self, history: HistoryWindow) -> int:
        window = history.last(self.config.damping_window)
        return sum(1 for value in window if value > self.config.damping_threshold)

    def _bound(self, value: float) -> float:
        return min(max(value, self.config.min_multiplier), self.config.ceiling)

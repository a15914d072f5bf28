"""Payout-ratio shaped multiplier sampler with rare heavy-tail overrides."""

from __future__ import annotations

from crash_engine.services.generation_config import GenerationConfig
from crash_engine.services.rng import RandomSource


class DistributionSampler:
    """Draw raw (unrounded) multipliers.

    The rare-tier roll happens first and short-circuits the main draw. The
    main draw is ``(1 - house_edge) / (1 - U)`` clamped to the configured
    bounds, so ``P(M >= x) = (1 - house_edge) / x`` below the cap.
    """

    def __init__(self, config: GenerationConfig, rng: RandomSource) -> None:
        self.config = config
        self._rng = rng
        self._tiers = config.ordered_rare_tiers

    def draw(self) -> float:
        roll = self._rng.random()
        threshold = 0.0
        for tier in self._tiers:
            threshold += tier.probability
            if roll < threshold:
                return self._rng.uniform(tier.low, tier.high)

        u = self._rng.random()
        payout = (1.0 - self.config.house_edge) / (1.0 - u)
        return min(max(payout, self.config.min_multiplier), self.config.max_multiplier)

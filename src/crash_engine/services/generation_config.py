"""Immutable parameters for the outcome generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from crash_engine.core.settings import settings


@dataclass(frozen=True)
class RareTier:
    """Heavy-tail override band: with ``probability`` draw uniformly in [low, high]."""

    probability: float
    low: float
    high: float


@dataclass(frozen=True)
class ModuloRule:
    """Force rounds where ``round_number % modulus == 0`` into [low, high]."""

    modulus: int
    probability: float
    low: float
    high: float


@dataclass(frozen=True)
class ReliefRange:
    """Closed interval a relief tier draws its replacement value from."""

    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


@dataclass(frozen=True)
class GenerationConfig:
    """Immutable configuration for sampling, pattern breaking and streak relief."""

    house_edge: float = 0.1
    min_multiplier: float = 1.01
    max_multiplier: float = 500.0
    precision: int = 2
    rare_tiers: tuple[RareTier, ...] = (
        RareTier(0.0001, 250.0, 500.0),
        RareTier(0.0005, 100.0, 250.0),
        RareTier(0.002, 50.0, 100.0),
    )
    history_capacity: int = 100

    modulo_rules: tuple[ModuloRule, ...] = (
        ModuloRule(13, 0.5, 1.01, 1.01),
        ModuloRule(7, 0.3, 1.01, 1.3),
    )
    damping_window: int = 10
    damping_threshold: float = 10.0
    damping_min_count: int = 3
    damping_factor: ReliefRange = field(default_factory=lambda: ReliefRange(0.2, 0.7))
    jitter: float = 0.05
    oscillation_amplitude: float = 0.03
    oscillation_frequency: float = 0.37

    floor_streak: int = 3
    floor_relief: ReliefRange = field(default_factory=lambda: ReliefRange(2.0, 5.0))
    low_threshold: float = 1.2
    low_streak: int = 5
    low_relief: ReliefRange = field(default_factory=lambda: ReliefRange(1.5, 3.0))
    long_window: int = 20
    long_window_low_ratio: float = 0.6
    long_window_relief: ReliefRange = field(default_factory=lambda: ReliefRange(1.3, 2.0))

    def __post_init__(self) -> None:
        if not 0 < self.house_edge < 1:
            raise ValueError("house_edge must be strictly between 0 and 1")
        if not 0 < self.min_multiplier <= self.max_multiplier:
            raise ValueError("min_multiplier must be positive and not above max_multiplier")
        if self.history_capacity < 1:
            raise ValueError("history_capacity must be at least 1")

        # Rarer bands must sit strictly higher: sort by magnitude, then require
        # probability to fall as magnitude rises.
        by_magnitude = sorted(self.rare_tiers, key=lambda tier: tier.low)
        for tier in by_magnitude:
            if not 0 < tier.probability < 1 or tier.low > tier.high:
                raise ValueError(f"invalid rare tier {tier}")
        for lower, higher in zip(by_magnitude, by_magnitude[1:]):
            if higher.low <= lower.low or higher.probability >= lower.probability:
                raise ValueError(
                    "rare tiers need strictly decreasing probability for "
                    "strictly increasing magnitude"
                )
        if sum(tier.probability for tier in self.rare_tiers) >= 1:
            raise ValueError("rare tier probabilities must sum to less than 1")

        for rule in self.modulo_rules:
            if rule.modulus < 1 or not 0 <= rule.probability <= 1 or rule.low > rule.high:
                raise ValueError(f"invalid modulo rule {rule}")
            if rule.low < self.min_multiplier or rule.high > self.ceiling:
                raise ValueError(f"modulo rule {rule} forces values outside the output bounds")

        for name in ("damping_factor", "floor_relief", "low_relief", "long_window_relief"):
            relief: ReliefRange = getattr(self, name)
            if relief.low > relief.high:
                raise ValueError(f"{name} low bound exceeds high bound")

        # Relief draws are emitted as-is, so they must already sit inside the bounds.
        for name in ("floor_relief", "low_relief", "long_window_relief"):
            relief = getattr(self, name)
            if relief.low < self.min_multiplier or relief.high > self.ceiling:
                raise ValueError(
                    f"{name} [{relief.low}, {relief.high}] falls outside "
                    f"[{self.min_multiplier}, {self.ceiling}]"
                )

    @property
    def ordered_rare_tiers(self) -> tuple[RareTier, ...]:
        """Rare tiers with the rarest (highest magnitude) band first."""
        return tuple(sorted(self.rare_tiers, key=lambda tier: tier.probability))

    @property
    def ceiling(self) -> float:
        """Largest value the pipeline may emit."""
        return max([self.max_multiplier, *(tier.high for tier in self.rare_tiers)])


def load_generation_config() -> GenerationConfig:
    """Build generation configuration from global settings."""

    return GenerationConfig(
        house_edge=settings.house_edge,
        min_multiplier=settings.min_multiplier,
        max_multiplier=settings.max_multiplier,
        precision=settings.multiplier_precision,
        rare_tiers=tuple(RareTier(*tier) for tier in settings.rare_tiers),
        history_capacity=settings.history_capacity,
        modulo_rules=tuple(ModuloRule(*rule) for rule in settings.modulo_rules),
        damping_window=settings.damping_window,
        damping_threshold=settings.damping_threshold,
        damping_min_count=settings.damping_min_count,
        damping_factor=ReliefRange(*settings.damping_factor_range),
        jitter=settings.jitter,
        oscillation_amplitude=settings.oscillation_amplitude,
        oscillation_frequency=settings.oscillation_frequency,
        floor_streak=settings.floor_streak,
        floor_relief=ReliefRange(*settings.floor_relief_range),
        low_threshold=settings.low_threshold,
        low_streak=settings.low_streak,
        low_relief=ReliefRange(*settings.low_relief_range),
        long_window=settings.long_window,
        long_window_low_ratio=settings.long_window_low_ratio,
        long_window_relief=ReliefRange(*settings.long_window_relief_range),
    )

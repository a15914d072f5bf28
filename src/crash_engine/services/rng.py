"""Random source shared by the generation pipeline."""

from __future__ import annotations

import random
from typing import Protocol


class RandomSource(Protocol):
    """Subset of :class:`random.Random` the pipeline relies on."""

    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...


def build_random_source(seed: int | None = None) -> RandomSource:
    """Return a seeded PRNG for reproducible runs, otherwise an OS-entropy source."""
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)

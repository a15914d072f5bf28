# src/crash_engine/services/__init__.py
"""Generation pipeline and collaborator services."""

from .batch_controller import BatchController, GenerationOutcome, GenerationResult
from .notifier import SocketServerClient
from .pattern_breaker import PatternBreaker
from .round_store import SqlRoundStore
from .sampler import DistributionSampler
from .sequencer import MultiplierPipeline, RoundSequencer
from .streak_corrector import StreakCorrector

__all__ = [
    "BatchController",
    "GenerationOutcome",
    "GenerationResult",
    "SocketServerClient",
    "PatternBreaker",
    "SqlRoundStore",
    "DistributionSampler",
    "MultiplierPipeline",
    "RoundSequencer",
    "StreakCorrector",
]

"""Generation state and the monotonic round sequencer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from crash_engine.services.generation_config import GenerationConfig
from crash_engine.services.history import HistoryWindow
from crash_engine.services.pattern_breaker import PatternBreaker
from crash_engine.services.rng import RandomSource
from crash_engine.services.sampler import DistributionSampler
from crash_engine.services.streak_corrector import StreakCorrector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundDraft:
    """A generated round that has not been persisted yet."""

    round_number: int
    multiplier: float

    def as_payload(self) -> dict[str, float | int]:
        return {"round_number": self.round_number, "multiplier": self.multiplier}


@dataclass
class GenerationState:
    """Process-wide generation state with a single logical owner.

    Mutated only by the batch controller and the round sequencer.
    """

    next_round_to_generate: int
    current_round: int
    history: HistoryWindow
    buffer: list[RoundDraft] = field(default_factory=list)
    generating: bool = False
    last_queue_check: datetime | None = None
    last_queue_size: int | None = None
    last_game_phase: str | None = None

    @classmethod
    def starting_after(cls, last_round: int, history_capacity: int) -> GenerationState:
        """State whose first generated round is ``last_round + 1``."""
        return cls(
            next_round_to_generate=last_round + 1,
            current_round=last_round,
            history=HistoryWindow(history_capacity),
        )


@dataclass(frozen=True)
class SequencerCheckpoint:
    """Immutable capture of sequencer state taken before a batch."""

    next_round_to_generate: int
    buffer_length: int
    history: tuple[float, ...]


class MultiplierPipeline:
    """Sampler -> pattern breaker -> streak corrector, run once per round."""

    def __init__(self, config: GenerationConfig, rng: RandomSource) -> None:
        self.config = config
        self.sampler = DistributionSampler(config, rng)
        self.pattern_breaker = PatternBreaker(config, rng)
        self.corrector = StreakCorrector(config, rng)

    def generate(self, round_number: int, history: HistoryWindow) -> float:
        raw = self.sampler.draw()
        perturbed = self.pattern_breaker.perturb(raw, round_number, history)
        return self.corrector.correct(perturbed, history)


class RoundSequencer:
    """Owns the round counter and the not-yet-persisted buffer."""

    def __init__(self, state: GenerationState, pipeline: MultiplierPipeline) -> None:
        self.state = state
        self.pipeline = pipeline

    def next_round(self) -> RoundDraft:
        round_number = self.state.next_round_to_generate
        multiplier = self.pipeline.generate(round_number, self.state.history)
        draft = RoundDraft(round_number=round_number, multiplier=multiplier)
        self.state.buffer.append(draft)
        self.state.next_round_to_generate = round_number + 1
        logger.debug("[Round %d] Generated multiplier %.2f", round_number, multiplier)
        return draft

    def checkpoint(self) -> SequencerCheckpoint:
        return SequencerCheckpoint(
            next_round_to_generate=self.state.next_round_to_generate,
            buffer_length=len(self.state.buffer),
            history=self.state.history.snapshot(),
        )

    def rollback(self, checkpoint: SequencerCheckpoint) -> None:
        """Discard everything generated since ``checkpoint``."""
        discarded = len(self.state.buffer) - checkpoint.buffer_length
        del self.state.buffer[checkpoint.buffer_length:]
        self.state.history.restore(checkpoint.history)
        self.state.next_round_to_generate = checkpoint.next_round_to_generate
        logger.info(
            "Discarded %d unpersisted rounds; next round rewound to %d",
            discarded,
            checkpoint.next_round_to_generate,
        )

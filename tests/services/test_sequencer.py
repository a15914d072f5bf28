"""Tests for the round sequencer and the end-to-end generation pipeline."""

import random

import pytest

from crash_engine.services.generation_config import GenerationConfig
from crash_engine.services.sequencer import GenerationState, MultiplierPipeline, RoundSequencer

NO_TIER = 0.5


def _sequencer(config: GenerationConfig, rng, last_round: int = 0) -> RoundSequencer:
    state = GenerationState.starting_after(last_round, config.history_capacity)
    return RoundSequencer(state, MultiplierPipeline(config, rng))


def test_round_numbers_increase_by_exactly_one(generation_config) -> None:
    sequencer = _sequencer(generation_config, random.Random(5), last_round=1000)

    numbers = [sequencer.next_round().round_number for _ in range(250)]

    assert numbers[0] == 1001
    assert numbers == list(range(1001, 1251))
    assert sequencer.state.next_round_to_generate == 1251


def test_buffer_accumulates_every_round(generation_config) -> None:
    sequencer = _sequencer(generation_config, random.Random(5))

    drafts = [sequencer.next_round() for _ in range(7)]

    assert sequencer.state.buffer == drafts


def test_full_pipeline_respects_bounds(generation_config) -> None:
    sequencer = _sequencer(generation_config, random.Random(2024))

    for _ in range(20_000):
        multiplier = sequencer.next_round().multiplier
        assert generation_config.min_multiplier <= multiplier <= generation_config.max_multiplier
        assert round(multiplier, 2) == multiplier


def test_history_window_stays_bounded(generation_config) -> None:
    sequencer = _sequencer(generation_config, random.Random(1))

    for _ in range(generation_config.history_capacity * 3):
        sequencer.next_round()

    history = sequencer.state.history
    assert len(history) == generation_config.history_capacity
    expected_tail = [draft.multiplier for draft in sequencer.state.buffer[-history.capacity:]]
    assert list(history) == expected_tail


def test_fixed_uniform_draws_produce_expected_multipliers(scripted_random) -> None:
    """houseEdge=0.1, MIN=1.01, MAX=500 with pattern breaking switched off."""
    config = GenerationConfig(
        house_edge=0.1,
        min_multiplier=1.01,
        max_multiplier=500.0,
        modulo_rules=(),
        jitter=0.0,
        oscillation_amplitude=0.0,
    )
    rng = scripted_random(
        [
            NO_TIER, 0.55,          # 0.9 / 0.45 -> 2.00
            NO_TIER, 0.10,          # 0.9 / 0.90 -> clamped to 1.01
            NO_TIER, 0.00,          # 0.90 -> 1.01
            NO_TIER, 0.05,          # 0.947 -> 1.01
            NO_TIER, 0.82, 0.5,     # three floors in a row -> relief draw in [2, 5]
            NO_TIER, 0.91,          # 0.9 / 0.09 -> 10.00
            0.001, 0.2,             # rare band [50, 100]
            NO_TIER, 0.25,          # 0.9 / 0.75 -> 1.20
        ]
    )
    sequencer = _sequencer(config, rng)

    values = [sequencer.next_round().multiplier for _ in range(8)]

    assert values == [2.0, 1.01, 1.01, 1.01, 3.5, 10.0, 60.0, 1.2]
    assert rng.remaining == 0


def test_same_seed_reproduces_sequence(generation_config) -> None:
    first = _sequencer(generation_config, random.Random(77))
    second = _sequencer(generation_config, random.Random(77))

    assert [first.next_round() for _ in range(300)] == [second.next_round() for _ in range(300)]


def test_rollback_restores_checkpoint(generation_config) -> None:
    sequencer = _sequencer(generation_config, random.Random(8), last_round=50)
    sequencer.next_round()
    checkpoint = sequencer.checkpoint()
    history_before = sequencer.state.history.snapshot()

    for _ in range(5):
        sequencer.next_round()
    sequencer.rollback(checkpoint)

    assert sequencer.state.next_round_to_generate == 52
    assert len(sequencer.state.buffer) == 1
    assert sequencer.state.history.snapshot() == history_before
    assert sequencer.next_round().round_number == 52


@pytest.mark.parametrize("last_round", [0, 999, 123_456])
def test_starting_after_sets_first_round(generation_config, last_round) -> None:
    state = GenerationState.starting_after(last_round, generation_config.history_capacity)
    assert state.next_round_to_generate == last_round + 1
    assert state.current_round == last_round

"""Tests for the offline simulation script."""

import pytest

from crash_engine.scripts.simulate import format_report, main, simulate
from crash_engine.services.generation_config import GenerationConfig


def test_simulation_is_reproducible_with_seed() -> None:
    config = GenerationConfig()

    first = simulate(2_000, config, seed=5)
    second = simulate(2_000, config, seed=5)

    assert first == second
    assert first.minimum >= config.min_multiplier
    assert first.maximum <= config.ceiling


def test_report_lists_cashout_returns() -> None:
    report = simulate(500, GenerationConfig(), seed=1, cashouts=(2.0,))

    text = format_report(report)

    assert "Rounds simulated: 500" in text
    assert "2.00x" in text


def test_rounds_must_be_positive() -> None:
    with pytest.raises(ValueError):
        simulate(0, GenerationConfig())


def test_cli_entry_point(capsys) -> None:
    assert main(["--rounds", "200", "--seed", "3", "--cashout", "1.5"]) == 0
    assert "1.50x" in capsys.readouterr().out

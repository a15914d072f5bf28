"""Offline simulation of the generation pipeline.

Runs the full sampler -> pattern breaker -> streak corrector pipeline for a
number of rounds without touching the database or the socket server, then
prints summary statistics and the empirical return at a few cash-out targets.
"""
from __future__ import annotations

import argparse
import statistics
from collections.abc import Sequence
from dataclasses import dataclass

from crash_engine.services.generation_config import GenerationConfig, load_generation_config
from crash_engine.services.rng import build_random_source
from crash_engine.services.sequencer import GenerationState, MultiplierPipeline, RoundSequencer

DEFAULT_CASHOUTS = (1.5, 2.0, 3.0, 5.0, 10.0)


@dataclass(frozen=True)
class SimulationReport:
    """Summary of a simulated run."""

    rounds: int
    mean: float
    median: float
    minimum: float
    maximum: float
    floor_share: float
    relief_hits: dict[str, int]
    returns: dict[float, float]


def simulate(
    rounds: int,
    config: GenerationConfig,
    seed: int | None = None,
    start_round: int = 1,
    cashouts: Sequence[float] = DEFAULT_CASHOUTS,
) -> SimulationReport:
    """Generate ``rounds`` multipliers and summarize them."""
    if rounds < 1:
        raise ValueError("rounds must be at least 1")

    pipeline = MultiplierPipeline(config, build_random_source(seed))
    state = GenerationState.starting_after(start_round - 1, config.history_capacity)
    sequencer = RoundSequencer(state, pipeline)
    values = [sequencer.next_round().multiplier for _ in range(rounds)]

    floor_hits = sum(1 for value in values if value <= config.min_multiplier)
    # A player cashing out at x wins x whenever the round reached x.
    returns = {
        target: sum(target for value in values if value >= target) / rounds
        for target in cashouts
    }
    return SimulationReport(
        rounds=rounds,
        mean=statistics.fmean(values),
        median=statistics.median(values),
        minimum=min(values),
        maximum=max(values),
        floor_share=floor_hits / rounds,
        relief_hits=dict(pipeline.corrector.rule_hits),
        returns=returns,
    )


def format_report(report: SimulationReport) -> str:
    lines = [
        f"Rounds simulated: {report.rounds:,}",
        f"Mean multiplier:  {report.mean:.4f}",
        f"Median:           {report.median:.2f}",
        f"Min / max:        {report.minimum:.2f} / {report.maximum:.2f}",
        f"Floor share:      {report.floor_share * 100:.2f}%",
        "Relief tiers:",
    ]
    if report.relief_hits:
        for name, hits in sorted(report.relief_hits.items()):
            lines.append(f"  {name:<24} {hits:>8} ({hits / report.rounds * 100:.2f}%)")
    else:
        lines.append("  none triggered")
    lines.append("Return by cash-out target:")
    for target, value in report.returns.items():
        lines.append(f"  {target:>6.2f}x  {value * 100:6.2f}%")
    return "\n".join(lines)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--rounds", type=int, default=100_000, help="Rounds to simulate.")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible run.")
    parser.add_argument(
        "--cashout",
        type=float,
        action="append",
        dest="cashouts",
        help="Cash-out target to evaluate; repeatable.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    report = simulate(
        args.rounds,
        load_generation_config(),
        seed=args.seed,
        cashouts=tuple(args.cashouts) if args.cashouts else DEFAULT_CASHOUTS,
    )
    print(format_report(report))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

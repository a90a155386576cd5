"""Monte Carlo estimates of parlay win rate and profit distribution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from typing import Sequence

import numpy as np
import pandas as pd

from .correlation import (
    CorrelationMatrix,
    build_correlation_matrix,
    cholesky_factor,
    generate_correlated_uniform,
)
from .parlay import ParlaySimulation
from .upsets import DEFAULT_UPSET_FACTORS, UpsetFactors, adjusted_probabilities

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100_000
PERCENTILE_MARKS = (5, 25, 50, 75, 95)


@dataclass(frozen=True)
class Percentiles:
    p5: float
    p25: float
    p50: float
    p75: float
    p95: float


@dataclass(frozen=True)
class PayoutBucket:
    range: str
    count: int
    percentage: float
    is_win: bool


@dataclass(frozen=True)
class ProfitBucket:
    outcome: float
    frequency: int
    label: str


@dataclass(frozen=True)
class UpsetStats:
    """How much of the simulated win rate comes from the upset adjustments.

    Attributes:
        total_upsets: leg hits that would have missed at the implied probability
        upset_wins: parlay wins that needed an upset hit or a chaos day
        pure_odds_win_rate: win rate using implied probabilities only
        adjusted_win_rate: win rate with upset factors applied
        upset_impact: adjusted minus pure win rate
        chaos_day_wins: parlay wins on chaos days
        total_chaos_days: number of chaos-day trials
    """

    total_upsets: int
    upset_wins: int
    pure_odds_win_rate: float
    adjusted_win_rate: float
    upset_impact: float
    chaos_day_wins: int
    total_chaos_days: int


@dataclass(frozen=True)
class MonteCarloResult:
    parlay_index: int
    simulations: int
    wins: int
    losses: int
    win_rate: float
    payout_distribution: tuple[PayoutBucket, ...]
    profit_distribution: tuple[ProfitBucket, ...]
    expected_profit: float
    median_outcome: float
    percentiles: Percentiles
    upset_stats: UpsetStats


@dataclass(frozen=True)
class CorrelatedMonteCarloResult(MonteCarloResult):
    correlation_matrix: CorrelationMatrix
    independent_win_rate: float
    correlated_win_rate: float
    correlation_impact: float
    probability_adjustment_ratio: float


@dataclass(frozen=True)
class LegRisk:
    parlay_index: int
    leg_index: int
    description: str
    adjusted_probability: float


@dataclass(frozen=True)
class ComparativeResult:
    results: tuple[MonteCarloResult, ...]
    comparison_data: pd.DataFrame = field(compare=False)
    best_by_win_rate: int
    best_by_expected_profit: int
    weakest_legs: tuple[LegRisk, ...]


@dataclass(frozen=True)
class CorrelatedComparativeResult(ComparativeResult):
    average_correlation_impact: float


def _validate_iterations(iterations: int) -> int:
    if isinstance(iterations, bool) or not isinstance(iterations, (int, np.integer)):
        raise ValueError(f"iterations must be an integer, got {iterations!r}")
    if iterations < 0:
        raise ValueError("iterations must be non-negative")
    return int(iterations)


def _distributions(
    parlay: ParlaySimulation, wins: int, losses: int, total: int
) -> tuple[tuple[PayoutBucket, ...], tuple[ProfitBucket, ...]]:
    def share(count: int) -> float:
        return count / total * 100 if total else 0.0

    payout = (
        PayoutBucket(range=f"Lose ${parlay.stake:.0f}", count=losses, percentage=share(losses), is_win=False),
        PayoutBucket(range=f"Win ${parlay.profit_on_win:.0f}", count=wins, percentage=share(wins), is_win=True),
    )
    profit = (
        ProfitBucket(outcome=-parlay.stake, frequency=losses, label="Loss"),
        ProfitBucket(outcome=parlay.profit_on_win, frequency=wins, label="Win"),
    )
    return payout, profit


def _empty_result(parlay: ParlaySimulation) -> MonteCarloResult:
    payout, profit = _distributions(parlay, 0, 0, 0)
    return MonteCarloResult(
        parlay_index=0,
        simulations=0,
        wins=0,
        losses=0,
        win_rate=0.0,
        payout_distribution=payout,
        profit_distribution=profit,
        expected_profit=0.0,
        median_outcome=0.0,
        percentiles=Percentiles(0.0, 0.0, 0.0, 0.0, 0.0),
        upset_stats=UpsetStats(0, 0, 0.0, 0.0, 0.0, 0, 0),
    )


def _trial_probabilities(
    parlay: ParlaySimulation,
    chaos: np.ndarray,
    factors: UpsetFactors,
) -> np.ndarray:
    base = adjusted_probabilities(parlay.legs, False, factors)
    boosted = adjusted_probabilities(parlay.legs, True, factors)
    return np.where(chaos[:, None], boosted, base)


def _summarize(
    parlay: ParlaySimulation,
    wins_mask: np.ndarray,
    pure_wins_mask: np.ndarray,
    upset_legs: np.ndarray,
    chaos: np.ndarray,
) -> MonteCarloResult:
    iterations = wins_mask.size
    wins = int(wins_mask.sum())
    losses = iterations - wins
    outcomes = np.where(wins_mask, parlay.profit_on_win, -parlay.stake)
    marks = np.percentile(outcomes, PERCENTILE_MARKS)
    percentiles = Percentiles(*(float(value) for value in marks))

    had_upset = upset_legs.any(axis=1)
    win_rate = wins / iterations
    pure_rate = float(pure_wins_mask.mean())
    upset_stats = UpsetStats(
        total_upsets=int(upset_legs.sum()),
        upset_wins=int((wins_mask & (had_upset | (chaos & ~pure_wins_mask))).sum()),
        pure_odds_win_rate=pure_rate,
        adjusted_win_rate=win_rate,
        upset_impact=win_rate - pure_rate,
        chaos_day_wins=int((wins_mask & chaos).sum()),
        total_chaos_days=int(chaos.sum()),
    )
    payout, profit = _distributions(parlay, wins, losses, iterations)
    return MonteCarloResult(
        parlay_index=0,
        simulations=iterations,
        wins=wins,
        losses=losses,
        win_rate=win_rate,
        payout_distribution=payout,
        profit_distribution=profit,
        expected_profit=float(outcomes.mean()),
        median_outcome=percentiles.p50,
        percentiles=percentiles,
        upset_stats=upset_stats,
    )


def run_monte_carlo_simulation(
    parlay: ParlaySimulation,
    iterations: int = DEFAULT_ITERATIONS,
    upset_factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
    rng: np.random.Generator | None = None,
) -> MonteCarloResult:
    """Simulate a parlay with independent legs and upset-adjusted probabilities."""
    iterations = _validate_iterations(iterations)
    if iterations == 0 or not parlay.legs:
        logger.debug("Skipping simulation: iterations=%d legs=%d", iterations, len(parlay.legs))
        return _empty_result(parlay)
    rng = rng or np.random.default_rng()
    n = len(parlay.legs)

    chaos = rng.random(iterations) < upset_factors.chaos_day_chance
    draws = rng.random((iterations, n))
    probs = _trial_probabilities(parlay, chaos, upset_factors)
    pure = np.array([leg.implied_probability for leg in parlay.legs])

    wins_mask = np.all(draws <= probs, axis=1)
    pure_wins_mask = np.all(draws <= pure, axis=1)
    upset_legs = (draws > pure) & (draws <= probs)

    result = _summarize(parlay, wins_mask, pure_wins_mask, upset_legs, chaos)
    logger.debug("Simulated %d trials over %d legs: win rate %.4f", iterations, n, result.win_rate)
    return result


def run_correlated_monte_carlo_simulation(
    parlay: ParlaySimulation,
    iterations: int = DEFAULT_ITERATIONS,
    upset_factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
    correlation_matrix: CorrelationMatrix | None = None,
    rng: np.random.Generator | None = None,
) -> CorrelatedMonteCarloResult:
    """Simulate a parlay with legs drawn jointly through a Gaussian copula.

    An independent draw set is simulated alongside for the independent and
    pure-odds comparison rates. Pass ``correlation_matrix`` to reuse a matrix
    already built for the same legs.
    """
    iterations = _validate_iterations(iterations)
    if correlation_matrix is None:
        correlation_matrix = build_correlation_matrix(parlay.legs)
    n = len(parlay.legs)
    if correlation_matrix.leg_count != n:
        raise ValueError(
            f"correlation matrix covers {correlation_matrix.leg_count} legs, parlay has {n}"
        )

    if iterations == 0 or n == 0:
        logger.debug("Skipping correlated simulation: iterations=%d legs=%d", iterations, n)
        base = _empty_result(parlay)
        independent_rate = correlated_rate = 0.0
    else:
        rng = rng or np.random.default_rng()
        factor = cholesky_factor(correlation_matrix)

        chaos = rng.random(iterations) < upset_factors.chaos_day_chance
        correlated = generate_correlated_uniform(factor, rng=rng, size=iterations)
        independent = rng.random((iterations, n))
        probs = _trial_probabilities(parlay, chaos, upset_factors)
        pure = np.array([leg.implied_probability for leg in parlay.legs])

        wins_mask = np.all(correlated <= probs, axis=1)
        pure_wins_mask = np.all(independent <= pure, axis=1)
        upset_legs = (correlated > pure) & (correlated <= probs)

        base = _summarize(parlay, wins_mask, pure_wins_mask, upset_legs, chaos)
        independent_rate = float(np.all(independent <= probs, axis=1).mean())
        correlated_rate = base.win_rate
        logger.debug(
            "Correlated simulation: %d trials, correlated %.4f vs independent %.4f",
            iterations,
            correlated_rate,
            independent_rate,
        )

    return CorrelatedMonteCarloResult(
        **{f.name: getattr(base, f.name) for f in fields(MonteCarloResult)},
        correlation_matrix=correlation_matrix,
        independent_win_rate=independent_rate,
        correlated_win_rate=correlated_rate,
        correlation_impact=correlated_rate - independent_rate,
        probability_adjustment_ratio=correlated_rate / independent_rate if independent_rate > 0 else 1.0,
    )


def find_weakest_legs(
    parlays: Sequence[ParlaySimulation],
    upset_factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
) -> tuple[LegRisk, ...]:
    """Lowest adjusted-probability leg of each parlay, weakest first."""
    weakest: list[LegRisk] = []
    for parlay_index, parlay in enumerate(parlays):
        if not parlay.legs:
            continue
        probs = adjusted_probabilities(parlay.legs, False, upset_factors)
        leg_index = int(np.argmin(probs))
        weakest.append(
            LegRisk(
                parlay_index=parlay_index,
                leg_index=leg_index,
                description=parlay.legs[leg_index].description,
                adjusted_probability=float(probs[leg_index]),
            )
        )
    return tuple(sorted(weakest, key=lambda risk: risk.adjusted_probability))


def _comparison_row(idx: int, parlay: ParlaySimulation, result: MonteCarloResult) -> dict:
    return {
        "name": f"Parlay {idx + 1}",
        "win_rate": result.win_rate,
        "loss_rate": 1 - result.win_rate if result.simulations else 0.0,
        "expected_profit": result.expected_profit,
        "potential_win": parlay.profit_on_win,
        "stake": parlay.stake,
        "pure_win_rate": result.upset_stats.pure_odds_win_rate,
        "upset_impact": result.upset_stats.upset_impact,
    }


def _best_index(values: Sequence[float]) -> int:
    if len(values) == 0:
        return -1
    return int(np.argmax(values))


def run_comparative_simulation(
    parlays: Sequence[ParlaySimulation],
    iterations: int = DEFAULT_ITERATIONS,
    upset_factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
    rng: np.random.Generator | None = None,
) -> ComparativeResult:
    """Simulate several parlays and report which looks best."""
    rng = rng or np.random.default_rng()
    results = tuple(
        replace(run_monte_carlo_simulation(parlay, iterations, upset_factors, rng=rng), parlay_index=idx)
        for idx, parlay in enumerate(parlays)
    )
    comparison = pd.DataFrame(
        [_comparison_row(idx, parlay, result) for idx, (parlay, result) in enumerate(zip(parlays, results))],
        columns=[
            "name",
            "win_rate",
            "loss_rate",
            "expected_profit",
            "potential_win",
            "stake",
            "pure_win_rate",
            "upset_impact",
        ],
    )
    return ComparativeResult(
        results=results,
        comparison_data=comparison,
        best_by_win_rate=_best_index([r.win_rate for r in results]),
        best_by_expected_profit=_best_index([r.expected_profit for r in results]),
        weakest_legs=find_weakest_legs(parlays, upset_factors),
    )


def run_correlated_comparative_simulation(
    parlays: Sequence[ParlaySimulation],
    iterations: int = DEFAULT_ITERATIONS,
    upset_factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
    correlation_matrices: Sequence[CorrelationMatrix] | None = None,
    rng: np.random.Generator | None = None,
) -> CorrelatedComparativeResult:
    """Correlated variant of :func:`run_comparative_simulation`."""
    if correlation_matrices is None:
        correlation_matrices = [build_correlation_matrix(parlay.legs) for parlay in parlays]
    if len(correlation_matrices) != len(parlays):
        raise ValueError("correlation_matrices must align with parlays")
    rng = rng or np.random.default_rng()

    results = tuple(
        replace(
            run_correlated_monte_carlo_simulation(parlay, iterations, upset_factors, matrix, rng=rng),
            parlay_index=idx,
        )
        for idx, (parlay, matrix) in enumerate(zip(parlays, correlation_matrices))
    )
    rows = []
    for idx, (parlay, result) in enumerate(zip(parlays, results)):
        row = _comparison_row(idx, parlay, result)
        row.update(
            independent_win_rate=result.independent_win_rate,
            correlated_win_rate=result.correlated_win_rate,
            correlation_impact=result.correlation_impact,
            avg_correlation=result.correlation_matrix.avg_correlation,
            has_high_correlation=result.correlation_matrix.has_high_correlation,
        )
        rows.append(row)
    comparison = pd.DataFrame(rows)
    impacts = [result.correlation_impact for result in results]
    return CorrelatedComparativeResult(
        results=results,
        comparison_data=comparison,
        best_by_win_rate=_best_index([r.win_rate for r in results]),
        best_by_expected_profit=_best_index([r.expected_profit for r in results]),
        weakest_legs=find_weakest_legs(parlays, upset_factors),
        average_correlation_impact=float(np.mean(impacts)) if impacts else 0.0,
    )

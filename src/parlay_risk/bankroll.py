"""Bankroll trajectories under repeated fractional-Kelly betting."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields

import numpy as np
import pandas as pd

from .kelly import kelly_fraction
from .simulation import PERCENTILE_MARKS, Percentiles

logger = logging.getLogger(__name__)

DEFAULT_PATHS = 1000
TRADING_DAYS_PER_YEAR = 365
WHAT_IF_STRATEGIES = (
    ("full_kelly", 1.0),
    ("half_kelly", 0.5),
    ("quarter_kelly", 0.25),
)
_PERCENTILE_COLUMNS = [f"p{mark}" for mark in PERCENTILE_MARKS]


@dataclass(frozen=True)
class SimulationParams:
    """Inputs for :func:`simulate_bankroll_growth`.

    Attributes:
        starting_bankroll: bankroll at day 0
        win_probability: probability each bet wins
        decimal_odds: payout per unit staked, stake included
        kelly_multiplier: 1.0 = full Kelly, 0.5 = half, 0 = never bet
        days_to_simulate: number of recorded days per path
        bets_per_day: sequential bets placed each day
        iterations: number of independent paths
        ruin_threshold: fraction of the starting bankroll at or below which a path is ruined
    """

    starting_bankroll: float
    win_probability: float
    decimal_odds: float
    kelly_multiplier: float = 1.0
    days_to_simulate: int = 30
    bets_per_day: int = 3
    iterations: int = DEFAULT_PATHS
    ruin_threshold: float = 0.10

    def __post_init__(self) -> None:
        if not math.isfinite(self.starting_bankroll) or self.starting_bankroll <= 0:
            raise ValueError(f"starting_bankroll must be positive, got {self.starting_bankroll}")
        if not 0.0 <= self.win_probability <= 1.0:
            raise ValueError(f"win_probability must be in [0, 1], got {self.win_probability}")
        if not self.decimal_odds > 1:
            raise ValueError(f"decimal_odds must be greater than 1, got {self.decimal_odds}")
        if not self.kelly_multiplier >= 0:
            raise ValueError(f"kelly_multiplier must be >= 0, got {self.kelly_multiplier}")
        for name in ("days_to_simulate", "bets_per_day", "iterations"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if not 0.0 <= self.ruin_threshold < 1.0:
            raise ValueError(f"ruin_threshold must be in [0, 1), got {self.ruin_threshold}")


@dataclass(frozen=True)
class ProjectionResult:
    kelly_multiplier: float
    kelly_fraction: float
    stake_fraction: float
    daily_percentiles: pd.DataFrame = field(compare=False)
    final_percentiles: Percentiles
    growth_percent: float
    probability_of_profit: float
    probability_of_ruin: float
    average_max_drawdown: float
    sharpe_ratio: float

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProjectionResult):
            return NotImplemented
        return all(
            getattr(self, f.name) == getattr(other, f.name) for f in fields(self) if f.compare
        ) and self.daily_percentiles.equals(other.daily_percentiles)


@dataclass(frozen=True)
class WhatIfResults:
    full_kelly: ProjectionResult
    half_kelly: ProjectionResult
    quarter_kelly: ProjectionResult
    combined_daily_data: pd.DataFrame = field(compare=False)


def _flat_projection(params: SimulationParams, full_fraction: float) -> ProjectionResult:
    start = float(params.starting_bankroll)
    daily = pd.DataFrame(
        start,
        index=pd.RangeIndex(params.days_to_simulate + 1, name="day"),
        columns=_PERCENTILE_COLUMNS,
    )
    return ProjectionResult(
        kelly_multiplier=params.kelly_multiplier,
        kelly_fraction=full_fraction,
        stake_fraction=full_fraction * params.kelly_multiplier,
        daily_percentiles=daily,
        final_percentiles=Percentiles(start, start, start, start, start),
        growth_percent=0.0,
        probability_of_profit=0.0,
        probability_of_ruin=0.0,
        average_max_drawdown=0.0,
        sharpe_ratio=0.0,
    )


def simulate_bankroll_growth(
    params: SimulationParams,
    rng: np.random.Generator | None = None,
) -> ProjectionResult:
    """Simulate many bankroll paths and summarize them with percentile bands."""
    full_fraction = kelly_fraction(params.win_probability, params.decimal_odds)
    if params.iterations == 0:
        logger.debug("Skipping bankroll simulation: zero paths")
        return _flat_projection(params, full_fraction)

    rng = rng or np.random.default_rng()
    start = float(params.starting_bankroll)
    paths = int(params.iterations)
    days = int(params.days_to_simulate)
    net_odds = params.decimal_odds - 1
    stake_fraction = full_fraction * params.kelly_multiplier
    ruin_level = start * params.ruin_threshold

    bankroll = np.full(paths, start)
    peak = bankroll.copy()
    max_drawdown = np.zeros(paths)
    ruined = np.zeros(paths, dtype=bool)
    history = np.empty((days + 1, paths))
    history[0] = bankroll

    for day in range(1, days + 1):
        for _ in range(params.bets_per_day):
            stake = bankroll * stake_fraction
            won = rng.random(paths) < params.win_probability
            updated = np.maximum(bankroll + np.where(won, stake * net_odds, -stake), 0.0)
            bankroll = np.where(ruined, bankroll, updated)
            peak = np.maximum(peak, bankroll)
            max_drawdown = np.maximum(max_drawdown, (peak - bankroll) / peak * 100)
            ruined |= bankroll <= ruin_level
        history[day] = bankroll

    bands = np.percentile(history, PERCENTILE_MARKS, axis=1).T
    daily = pd.DataFrame(bands, index=pd.RangeIndex(days + 1, name="day"), columns=_PERCENTILE_COLUMNS)
    final = history[-1]
    final_percentiles = Percentiles(*(float(value) for value in bands[-1]))

    returns = final / start - 1
    std = float(returns.std(ddof=1)) if paths > 1 else 0.0
    if std > 0 and days > 0:
        sharpe = float(returns.mean()) / std * math.sqrt(TRADING_DAYS_PER_YEAR / days)
    else:
        sharpe = 0.0

    result = ProjectionResult(
        kelly_multiplier=params.kelly_multiplier,
        kelly_fraction=full_fraction,
        stake_fraction=stake_fraction,
        daily_percentiles=daily,
        final_percentiles=final_percentiles,
        growth_percent=(final_percentiles.p50 - start) / start * 100,
        probability_of_profit=float((final > start).mean()),
        probability_of_ruin=float(ruined.mean()),
        average_max_drawdown=float(max_drawdown.mean()),
        sharpe_ratio=sharpe,
    )
    logger.debug(
        "Bankroll simulation x%.2f Kelly: median final %.2f, ruin %.3f",
        params.kelly_multiplier,
        final_percentiles.p50,
        result.probability_of_ruin,
    )
    return result


def run_what_if_comparison(
    bankroll: float,
    win_probability: float,
    decimal_odds: float,
    days: int = 30,
    bets_per_day: int = 3,
    iterations: int = DEFAULT_PATHS,
    rng: np.random.Generator | None = None,
) -> WhatIfResults:
    """Project full, half and quarter Kelly side by side.

    Each strategy draws from its own child generator spawned from ``rng``.
    """
    rng = rng or np.random.default_rng()
    children = rng.spawn(len(WHAT_IF_STRATEGIES))
    projections: dict[str, ProjectionResult] = {}
    for (name, multiplier), child in zip(WHAT_IF_STRATEGIES, children):
        params = SimulationParams(
            starting_bankroll=bankroll,
            win_probability=win_probability,
            decimal_odds=decimal_odds,
            kelly_multiplier=multiplier,
            days_to_simulate=days,
            bets_per_day=bets_per_day,
            iterations=iterations,
        )
        projections[name] = simulate_bankroll_growth(params, rng=child)

    columns = {}
    for name, projection in projections.items():
        daily = projection.daily_percentiles
        columns[name] = daily["p50"]
        columns[f"{name}_p5"] = daily["p5"]
        columns[f"{name}_p95"] = daily["p95"]
    combined = pd.DataFrame(columns)

    return WhatIfResults(combined_daily_data=combined, **projections)

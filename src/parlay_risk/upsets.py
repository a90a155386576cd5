from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .parlay import Leg

MIN_PROBABILITY = 0.01
MAX_PROBABILITY = 0.95


@dataclass(frozen=True)
class UpsetFactors:
    """Adjustments nudging implied probabilities toward observed upset rates.

    Attributes:
        underdog_boost: added for underdogs priced +200 to +499
        heavy_underdog_boost: added for underdogs priced +500 or longer
        favorite_variance: subtracted for favorites priced -300 or shorter
        chaos_day_chance: probability that a trial is a chaos day
        chaos_day_multiplier: applied to positive-odds legs on chaos days
        slight_underdog_boost: added for underdogs priced +100 to +199
        moderate_favorite_variance: subtracted for favorites priced -200 to -299
    """

    underdog_boost: float = 0.035
    heavy_underdog_boost: float = 0.06
    favorite_variance: float = 0.025
    chaos_day_chance: float = 0.05
    chaos_day_multiplier: float = 1.15
    slight_underdog_boost: float = 0.02
    moderate_favorite_variance: float = 0.015

    def __post_init__(self) -> None:
        if not 0.0 <= self.chaos_day_chance <= 1.0:
            raise ValueError(f"chaos_day_chance must be in [0, 1], got {self.chaos_day_chance}")
        if self.chaos_day_multiplier < 0:
            raise ValueError(f"chaos_day_multiplier must be >= 0, got {self.chaos_day_multiplier}")


DEFAULT_UPSET_FACTORS = UpsetFactors()
NO_UPSET_FACTORS = UpsetFactors(
    underdog_boost=0.0,
    heavy_underdog_boost=0.0,
    favorite_variance=0.0,
    chaos_day_chance=0.0,
    chaos_day_multiplier=1.0,
    slight_underdog_boost=0.0,
    moderate_favorite_variance=0.0,
)


def odds_adjustment(odds: float, factors: UpsetFactors = DEFAULT_UPSET_FACTORS) -> float:
    """Additive probability adjustment for a price bracket."""
    if odds >= 500:
        return factors.heavy_underdog_boost
    if odds >= 200:
        return factors.underdog_boost
    if odds > 0:
        return factors.slight_underdog_boost
    if odds <= -300:
        return -factors.favorite_variance
    if odds <= -200:
        return -factors.moderate_favorite_variance
    return 0.0


def adjusted_probability(
    leg: Leg,
    chaos_day: bool = False,
    factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
) -> float:
    """Upset-adjusted win probability of a single leg, clamped to [0.01, 0.95]."""
    probability = leg.implied_probability + odds_adjustment(leg.odds, factors)
    if chaos_day and leg.odds > 0:
        probability *= factors.chaos_day_multiplier
    return min(MAX_PROBABILITY, max(MIN_PROBABILITY, probability))


def adjusted_probabilities(
    legs: Sequence[Leg],
    chaos_day: bool = False,
    factors: UpsetFactors = DEFAULT_UPSET_FACTORS,
) -> np.ndarray:
    return np.array([adjusted_probability(leg, chaos_day, factors) for leg in legs], dtype=float)

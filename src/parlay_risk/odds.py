from __future__ import annotations

import math
from numbers import Real


def validate_american_odds(odds: object) -> float:
    """Return odds as a float, rejecting values that cannot be American odds."""
    if isinstance(odds, bool) or not isinstance(odds, Real):
        raise ValueError(f"odds must be numeric, got {odds!r}")
    value = float(odds)
    if not math.isfinite(value):
        raise ValueError(f"odds must be finite, got {odds!r}")
    if abs(value) < 100:
        raise ValueError(f"American odds must be <= -100 or >= +100, got {odds!r}")
    return value


def american_to_prob(odds: float) -> float:
    """Convert American odds to implied probability."""
    odds = validate_american_odds(odds)
    if odds > 0:
        return 100 / (odds + 100)
    return -odds / (-odds + 100)


def american_to_decimal(odds: float) -> float:
    """Convert American odds to decimal odds (stake included)."""
    odds = validate_american_odds(odds)
    if odds > 0:
        return odds / 100 + 1
    return 100 / abs(odds) + 1


def decimal_to_prob(decimal_odds: float) -> float:
    """Break-even probability of decimal odds."""
    if not decimal_odds > 1:
        raise ValueError("decimal odds must be greater than 1")
    return 1 / decimal_odds


def prob_to_american(probability: float) -> float:
    """Convert probability to American odds."""
    if not 0 < probability < 1:
        raise ValueError("probability must be between 0 and 1")
    if probability >= 0.5:
        return -100 * probability / (1 - probability)
    return 100 * (1 - probability) / probability


def expected_value(probability: float, odds: float) -> float:
    """Compute expected value per $1 stake for American odds."""
    payout = american_to_decimal(odds) - 1
    return probability * payout - (1 - probability)

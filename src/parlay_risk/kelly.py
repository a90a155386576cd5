"""Kelly criterion stake sizing.

``f* = (b * p - q) / b`` where ``b`` is decimal odds minus one, ``p`` the win
probability and ``q = 1 - p``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Sequence


StakeRisk = Literal["conservative", "moderate", "aggressive", "reckless"]
StakeAssessment = Literal["under-betting", "optimal", "over-betting", "significantly-over"]


@dataclass(frozen=True)
class KellyValidation:
    is_valid: bool
    errors: tuple[str, ...]


@dataclass(frozen=True)
class KellyResult:
    full_kelly_fraction: float
    adjusted_kelly_fraction: float
    recommended_stake: float
    expected_value: float
    edge: float
    risk_level: StakeRisk
    warning: str | None = None


@dataclass(frozen=True)
class VarianceMetrics:
    expected_return: float
    standard_deviation: float
    sharpe_ratio: float
    worst_case_95: float
    best_case_95: float
    risk_of_ruin: float
    max_drawdown_risk: float


@dataclass(frozen=True)
class TiltAnalysis:
    is_tilting: bool
    tilt_reason: str | None
    suggested_action: str
    streak_impact: int


@dataclass(frozen=True)
class KellyComparison:
    difference: float
    percent_difference: float
    assessment: StakeAssessment
    advice: str


def raw_kelly_fraction(win_probability: float, decimal_odds: float) -> float:
    """Unfloored Kelly fraction; negative when the bet has no edge."""
    if not 0 <= win_probability <= 1:
        raise ValueError(f"win_probability must be in [0, 1], got {win_probability}")
    if not decimal_odds > 1:
        raise ValueError(f"decimal_odds must be greater than 1, got {decimal_odds}")
    b = decimal_odds - 1
    return (b * win_probability - (1 - win_probability)) / b


def kelly_fraction(win_probability: float, decimal_odds: float) -> float:
    """Full Kelly fraction of bankroll, never negative."""
    return max(0.0, raw_kelly_fraction(win_probability, decimal_odds))


def validate_kelly_inputs(
    win_probability: float | None,
    decimal_odds: float | None,
    bankroll: float | None,
    kelly_multiplier: float | None = None,
    max_bet_percent: float | None = None,
) -> KellyValidation:
    errors: list[str] = []

    if win_probability is None or (isinstance(win_probability, float) and math.isnan(win_probability)):
        errors.append("Win probability is required")
    elif not 0 < win_probability < 1:
        errors.append("Win probability must be between 0.01 and 0.99")

    if decimal_odds is None or (isinstance(decimal_odds, float) and math.isnan(decimal_odds)):
        errors.append("Decimal odds are required")
    elif decimal_odds <= 1:
        errors.append("Decimal odds must be greater than 1")

    if bankroll is None or (isinstance(bankroll, float) and math.isnan(bankroll)):
        errors.append("Bankroll is required")
    elif bankroll < 10:
        errors.append("Minimum bankroll is $10")

    if kelly_multiplier is not None and not 0 < kelly_multiplier <= 1:
        errors.append("Kelly multiplier must be between 0.01 and 1")

    if max_bet_percent is not None and not 0 < max_bet_percent <= 0.25:
        errors.append("Max bet percent must be between 0.01 and 0.25")

    return KellyValidation(is_valid=not errors, errors=tuple(errors))


def _stake_risk(fraction: float) -> StakeRisk:
    if fraction <= 0.02:
        return "conservative"
    if fraction <= 0.04:
        return "moderate"
    if fraction <= 0.08:
        return "aggressive"
    return "reckless"


def calculate_kelly(
    win_probability: float,
    decimal_odds: float,
    bankroll: float,
    kelly_multiplier: float = 0.5,
    max_bet_percent: float = 0.05,
) -> KellyResult:
    """Recommended stake under fractional Kelly, capped at ``max_bet_percent``."""
    validation = validate_kelly_inputs(win_probability, decimal_odds, bankroll, kelly_multiplier, max_bet_percent)
    if not validation.is_valid:
        raise ValueError("; ".join(validation.errors))

    b = decimal_odds - 1
    p = win_probability
    q = 1 - p
    full = raw_kelly_fraction(p, decimal_odds)
    adjusted = max(min(full * kelly_multiplier, max_bet_percent), 0.0)
    stake = bankroll * adjusted
    edge = (p * decimal_odds - 1) * 100

    if full <= 0:
        warning = "No edge detected - Kelly suggests no bet"
    elif full > 0.25:
        warning = "Full Kelly suggests very aggressive sizing - use fractional Kelly"
    elif edge < 2:
        warning = "Thin edge (<2%) - consider passing or reducing stake"
    else:
        warning = None

    return KellyResult(
        full_kelly_fraction=full,
        adjusted_kelly_fraction=adjusted,
        recommended_stake=stake,
        expected_value=p * stake * b - q * stake,
        edge=edge,
        risk_level=_stake_risk(adjusted),
        warning=warning,
    )


def calculate_variance(
    win_probability: float,
    stake: float,
    decimal_odds: float,
    bankroll: float,
) -> VarianceMetrics:
    """Single-bet return spread, Sharpe ratio and an approximate risk of ruin."""
    b = decimal_odds - 1
    p = win_probability
    q = 1 - p

    expected = p * stake * b - q * stake
    variance = p * (stake * b - expected) ** 2 + q * (-stake - expected) ** 2
    std = math.sqrt(variance)

    fraction = stake / bankroll if bankroll > 0 else 0.0
    # (q/p)^(bankroll/stake) approximation
    if fraction > 0 and p > 0:
        try:
            risk_of_ruin = min((q / p) ** (1 / fraction) * 100, 100.0)
        except OverflowError:
            risk_of_ruin = 100.0
    else:
        risk_of_ruin = 0.0

    return VarianceMetrics(
        expected_return=expected,
        standard_deviation=std,
        sharpe_ratio=expected / std if std > 0 else 0.0,
        worst_case_95=expected - 1.96 * std,
        best_case_95=expected + 1.96 * std,
        risk_of_ruin=risk_of_ruin,
        max_drawdown_risk=fraction * 100,
    )


def analyze_tilt(
    win_streak: int,
    loss_streak: int,
    proposed_stake: float,
    bankroll: float,
    peak_bankroll: float,
) -> TiltAnalysis:
    """Flag stakes that suggest tilt after a streak or during a drawdown.

    Later checks take precedence when several trigger.
    """
    if not bankroll > 0 or not peak_bankroll > 0:
        raise ValueError("bankroll and peak_bankroll must be positive")
    stake_fraction = proposed_stake / bankroll
    drawdown_percent = (peak_bankroll - bankroll) / peak_bankroll * 100

    result = TiltAnalysis(False, None, "Proceed with bet", 0)
    if loss_streak >= 3 and stake_fraction > 0.03:
        result = TiltAnalysis(
            True,
            f"{loss_streak} consecutive losses - potential tilt detected",
            "Consider taking a break or reducing stake by 50%",
            -loss_streak * 5,
        )
    if win_streak >= 4 and stake_fraction > 0.06:
        result = TiltAnalysis(
            True,
            f"{win_streak} consecutive wins - potential overconfidence",
            "Stay disciplined - variance will regress",
            win_streak * 2,
        )
    if drawdown_percent > 20 and stake_fraction > 0.04:
        result = TiltAnalysis(
            True,
            f"{drawdown_percent:.1f}% drawdown from peak - chasing losses",
            "Reduce stake to rebuild bankroll gradually",
            -15,
        )
    return result


def calculate_parlay_kelly(
    legs: Sequence[tuple[float, float]],
    bankroll: float,
    kelly_multiplier: float = 0.5,
    correlation_factor: float = 0.85,
) -> KellyResult:
    """Kelly stake for a parlay of (win_probability, decimal_odds) legs.

    The joint probability is discounted by ``correlation_factor`` and the
    stake is capped at 3% of bankroll.
    """
    if not legs:
        raise ValueError("legs must be non-empty")
    probability = math.prod(p for p, _ in legs) * correlation_factor
    odds = math.prod(d for _, d in legs)
    return calculate_kelly(
        win_probability=probability,
        decimal_odds=odds,
        bankroll=bankroll,
        kelly_multiplier=kelly_multiplier,
        max_bet_percent=0.03,
    )


def compare_to_kelly(user_stake: float, kelly_recommended: float) -> KellyComparison:
    difference = user_stake - kelly_recommended
    percent = difference / kelly_recommended * 100 if kelly_recommended > 0 else 0.0

    if percent < -20:
        return KellyComparison(
            difference,
            percent,
            "under-betting",
            "Your stake is conservative. Consider increasing to capture more expected value.",
        )
    if percent <= 20:
        return KellyComparison(
            difference, percent, "optimal", "Your stake is within optimal range. Good bankroll management!"
        )
    if percent <= 100:
        return KellyComparison(
            difference,
            percent,
            "over-betting",
            "Your stake exceeds Kelly optimal. Consider reducing to manage variance.",
        )
    return KellyComparison(
        difference,
        percent,
        "significantly-over",
        "Warning: Your stake is significantly above Kelly optimal. High risk of ruin!",
    )

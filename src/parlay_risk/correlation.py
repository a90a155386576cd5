"""Pairwise leg correlation estimates and Gaussian-copula sampling."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Mapping, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm

from .parlay import Leg, normalize_player_name

logger = logging.getLogger(__name__)

CorrelationType = Literal["same_player", "same_game", "same_team", "cross_game"]
ConfidenceLabel = Literal["high", "medium", "low", "estimated"]

OBSERVATION_COLUMNS = (
    "market_type_1",
    "market_type_2",
    "correlation_type",
    "correlation_coefficient",
    "sample_size",
)

DEFAULT_MARKET_CORRELATIONS: Mapping[tuple[str, str], float] = MappingProxyType(
    {
        ("player_assists", "player_points"): 0.35,
        ("player_points", "player_rebounds"): 0.25,
        ("player_assists", "player_rebounds"): 0.15,
        ("player_pass_tds", "player_pass_yds"): 0.55,
        ("player_rush_tds", "player_rush_yds"): 0.40,
        ("player_rec_yds", "player_receptions"): 0.65,
        ("spreads", "totals"): 0.15,
        ("moneyline", "spreads"): 0.92,
        ("player_points", "team_totals"): 0.45,
    }
)

DEFAULT_TYPE_CORRELATIONS: Mapping[str, float] = MappingProxyType(
    {
        "same_player": 0.30,
        "same_game": 0.20,
        "same_team": 0.15,
        "cross_game": 0.05,
    }
)

# Ordered: the first matching keyword wins, so player stats precede game markets.
_MARKET_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("player_points", ("point", "pts")),
    ("player_assists", ("assist",)),
    ("player_rebounds", ("rebound",)),
    ("player_pass_yds", ("passing yard", "pass yd")),
    ("player_pass_tds", ("passing td", "pass td")),
    ("player_rush_yds", ("rushing yard", "rush yd")),
    ("player_rush_tds", ("rushing td", "rush td")),
    ("player_rec_yds", ("receiving yard", "rec yd")),
    ("player_receptions", ("reception",)),
    ("player_goals", ("goal",)),
    ("player_shots", ("shot",)),
    ("team_totals", ("team total",)),
    ("spreads", ("spread", "handicap")),
    ("totals", ("total", "over", "under")),
    ("moneyline", ("moneyline", "to win")),
)
_MONEYLINE_ABBREV = re.compile(r"\bml\b")
_PLAYER_OVER_UNDER = re.compile(r"^([A-Za-z\s.'-]+?)\s+(?:Over|Under|O/U)\b", re.IGNORECASE)
_PLAYER_DASH = re.compile(r"^([A-Za-z\s.'-]+?)\s*[-–]")
_MATCHUP = re.compile(r"(?:@|\bvs\.?)\s*([A-Z]{2,3})\b")
_TEAM_TOKEN = re.compile(r"\b([A-Z]{2,3})\b")
_NON_TEAM_TOKENS = {"ML", "OT", "TD", "TDS", "PTS", "REB", "AST", "YDS", "ATS", "SGP", "PRA"}


@dataclass(frozen=True)
class CorrelationConfig:
    """Correlation coefficients used when no observed data matches a pair.

    All values are calibration inputs rather than derived constants.
    """

    market_pairs: Mapping[tuple[str, str], float] = field(default_factory=lambda: DEFAULT_MARKET_CORRELATIONS)
    type_defaults: Mapping[str, float] = field(default_factory=lambda: DEFAULT_TYPE_CORRELATIONS)
    fallback: float = 0.05
    high_correlation_threshold: float = 0.3

    def market_pair(self, market1: str, market2: str) -> float | None:
        m1, m2 = sorted((market1, market2))
        value = self.market_pairs.get((m1, m2))
        if value is None:
            value = self.market_pairs.get((m2, m1))
        return value


DEFAULT_CORRELATION_CONFIG = CorrelationConfig()


@dataclass(frozen=True)
class LegCorrelation:
    leg_index_1: int
    leg_index_2: int
    correlation: float
    correlation_type: CorrelationType
    sample_size: int
    confidence: ConfidenceLabel


@dataclass(frozen=True)
class CorrelationMatrix:
    matrix: np.ndarray = field(compare=False)
    leg_count: int
    correlations: tuple[LegCorrelation, ...] = field(default_factory=tuple)
    avg_correlation: float = 0.0
    max_correlation: float = 0.0
    has_high_correlation: bool = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CorrelationMatrix):
            return NotImplemented
        return (
            self.leg_count == other.leg_count
            and self.correlations == other.correlations
            and self.avg_correlation == other.avg_correlation
            and self.max_correlation == other.max_correlation
            and self.has_high_correlation == other.has_high_correlation
            and np.array_equal(self.matrix, other.matrix)
        )

    @classmethod
    def from_array(
        cls,
        matrix: np.ndarray | Sequence[Sequence[float]],
        high_correlation_threshold: float = DEFAULT_CORRELATION_CONFIG.high_correlation_threshold,
    ) -> CorrelationMatrix:
        """Wrap a caller-specified correlation matrix, validating its shape and range."""
        array = np.array(matrix, dtype=float)
        if array.ndim != 2 or array.shape[0] != array.shape[1]:
            raise ValueError("correlation matrix must be square")
        if not np.all(np.isfinite(array)):
            raise ValueError("correlation matrix must be finite")
        if not np.allclose(array, array.T):
            raise ValueError("correlation matrix must be symmetric")
        if np.any(np.abs(array) > 1):
            raise ValueError("correlation values must lie in [-1, 1]")
        if not np.allclose(np.diag(array), 1.0):
            raise ValueError("correlation matrix diagonal must be 1")
        array = (array + array.T) / 2
        np.fill_diagonal(array, 1.0)
        n = array.shape[0]
        pairs = tuple(
            LegCorrelation(
                leg_index_1=i,
                leg_index_2=j,
                correlation=float(array[i, j]),
                correlation_type="same_game",
                sample_size=0,
                confidence="estimated",
            )
            for i in range(n)
            for j in range(i + 1, n)
        )
        return _assemble(array, pairs, high_correlation_threshold)


def _assemble(
    matrix: np.ndarray,
    correlations: tuple[LegCorrelation, ...],
    threshold: float,
) -> CorrelationMatrix:
    upper = matrix[np.triu_indices(matrix.shape[0], k=1)]
    matrix.setflags(write=False)
    if upper.size == 0:
        return CorrelationMatrix(matrix=matrix, leg_count=matrix.shape[0], correlations=correlations)
    return CorrelationMatrix(
        matrix=matrix,
        leg_count=matrix.shape[0],
        correlations=correlations,
        avg_correlation=float(upper.mean()),
        max_correlation=float(upper.max()),
        has_high_correlation=bool(np.any(np.abs(upper) > threshold)),
    )


def extract_market_type(leg: Leg) -> str:
    """Classify a leg's market from explicit metadata or its description."""
    if leg.market:
        return leg.market
    desc = leg.description.lower()
    for market, keywords in _MARKET_KEYWORDS:
        if any(keyword in desc for keyword in keywords):
            return market
    if _MONEYLINE_ABBREV.search(desc):
        return "moneyline"
    return "other"


def extract_player_name(leg: Leg) -> str | None:
    if leg.player:
        return normalize_player_name(leg.player) or None
    for pattern in (_PLAYER_OVER_UNDER, _PLAYER_DASH):
        match = pattern.match(leg.description)
        if match:
            return normalize_player_name(match.group(1)) or None
    return None


def extract_game_context(leg: Leg) -> tuple[str | None, frozenset[str]]:
    """Return the leg's team and every team abbreviation it references."""
    teams = {token for token in _TEAM_TOKEN.findall(leg.description) if token not in _NON_TEAM_TOKENS}
    matchup = _MATCHUP.search(leg.description)
    team = leg.team.upper() if leg.team else (matchup.group(1) if matchup else None)
    if team:
        teams.add(team)
    return team, frozenset(teams)


def get_correlation_type(leg1: Leg, leg2: Leg) -> CorrelationType:
    player1 = extract_player_name(leg1)
    player2 = extract_player_name(leg2)
    if player1 and player2 and player1 == player2:
        return "same_player"

    team1, refs1 = extract_game_context(leg1)
    team2, refs2 = extract_game_context(leg2)
    if leg1.game and leg2.game:
        if leg1.game == leg2.game:
            return "same_game"
    elif len(refs1) >= 2 and refs1 == refs2:
        return "same_game"
    elif team1 != team2 and ((team2 and team2 in refs1) or (team1 and team1 in refs2)):
        return "same_game"

    if team1 and team2 and team1 == team2:
        return "same_team"
    return "cross_game"


def lookup_correlation(
    market1: str,
    market2: str,
    correlation_type: str,
    observations: pd.DataFrame | None = None,
    config: CorrelationConfig = DEFAULT_CORRELATION_CONFIG,
) -> tuple[float, int, bool]:
    """Return (coefficient, sample size, is_estimated) for a pair of markets."""
    m1, m2 = sorted((market1, market2))
    if observations is not None and not observations.empty:
        missing = [col for col in OBSERVATION_COLUMNS if col not in observations.columns]
        if missing:
            raise ValueError(f"observations missing columns: {missing}")
        forward = (observations["market_type_1"] == m1) & (observations["market_type_2"] == m2)
        backward = (observations["market_type_1"] == m2) & (observations["market_type_2"] == m1)
        matches = observations[(forward | backward) & (observations["correlation_type"] == correlation_type)]
        if not matches.empty:
            row = matches.iloc[0]
            return float(row["correlation_coefficient"]), int(row["sample_size"]), False

    if correlation_type != "cross_game":
        pair_default = config.market_pair(m1, m2)
        if pair_default is not None:
            return float(pair_default), 0, True

    return float(config.type_defaults.get(correlation_type, config.fallback)), 0, True


def _confidence_label(sample_size: int, is_estimated: bool) -> ConfidenceLabel:
    if sample_size >= 100:
        return "high"
    if sample_size >= 20:
        return "medium"
    return "estimated" if is_estimated else "low"


def build_correlation_matrix(
    legs: Sequence[Leg],
    observations: pd.DataFrame | None = None,
    config: CorrelationConfig = DEFAULT_CORRELATION_CONFIG,
) -> CorrelationMatrix:
    """Estimate the symmetric pairwise correlation matrix for a set of legs."""
    n = len(legs)
    matrix = np.eye(n)
    markets = [extract_market_type(leg) for leg in legs]
    correlations: list[LegCorrelation] = []
    for i in range(n):
        for j in range(i + 1, n):
            corr_type = get_correlation_type(legs[i], legs[j])
            value, sample_size, is_estimated = lookup_correlation(
                markets[i], markets[j], corr_type, observations=observations, config=config
            )
            value = float(np.clip(value, -1.0, 1.0))
            matrix[i, j] = value
            matrix[j, i] = value
            correlations.append(
                LegCorrelation(
                    leg_index_1=i,
                    leg_index_2=j,
                    correlation=value,
                    correlation_type=corr_type,
                    sample_size=sample_size,
                    confidence=_confidence_label(sample_size, is_estimated),
                )
            )
    return _assemble(matrix, tuple(correlations), config.high_correlation_threshold)


def cholesky_factor(
    matrix: CorrelationMatrix | np.ndarray,
    max_retries: int = 10,
    initial_ridge: float = 1e-6,
) -> np.ndarray:
    """Lower-triangular L with L @ L.T equal to the (regularized) correlation matrix.

    Non positive-definite input is shrunk toward the identity,
    ``(R + ridge * I) / (1 + ridge)``, with the ridge growing tenfold per
    retry. If every retry fails the identity is returned, i.e. legs are
    sampled independently.
    """
    raw = matrix.matrix if isinstance(matrix, CorrelationMatrix) else np.asarray(matrix, dtype=float)
    if raw.ndim != 2 or raw.shape[0] != raw.shape[1]:
        raise ValueError("matrix must be square")
    n = raw.shape[0]
    if n == 0:
        return np.zeros((0, 0))
    sym = (raw + raw.T) / 2
    sym = np.clip(sym, -1.0, 1.0)
    np.fill_diagonal(sym, 1.0)
    try:
        return np.linalg.cholesky(sym)
    except np.linalg.LinAlgError:
        logger.warning("Correlation matrix is not positive definite; applying ridge regularization")

    identity = np.eye(n)
    ridge = initial_ridge
    for _ in range(max_retries):
        candidate = (sym + ridge * identity) / (1 + ridge)
        try:
            return np.linalg.cholesky(candidate)
        except np.linalg.LinAlgError:
            ridge *= 10
    logger.warning("Ridge regularization failed after %d retries; sampling legs independently", max_retries)
    return identity


def generate_correlated_uniform(
    factor: np.ndarray,
    rng: np.random.Generator | None = None,
    size: int | None = None,
) -> np.ndarray:
    """Draw uniforms on [0, 1] whose dependence follows the Cholesky factor."""
    rng = rng or np.random.default_rng()
    n = factor.shape[0]
    shape = (n,) if size is None else (size, n)
    z = rng.standard_normal(size=shape)
    correlated = z @ factor.T
    return norm.cdf(correlated)


@dataclass(frozen=True)
class CorrelatedProbability:
    independent_probability: float
    correlated_probability: float
    probability_ratio: float
    correlation_impact: float


def calculate_correlated_probability(
    leg_probabilities: Sequence[float],
    correlation_matrix: CorrelationMatrix,
    simulations: int = 50_000,
    rng: np.random.Generator | None = None,
) -> CorrelatedProbability:
    """Compare the naive product of leg probabilities with a copula estimate."""
    probs = np.asarray(leg_probabilities, dtype=float)
    independent = float(np.prod(probs))
    if not correlation_matrix.has_high_correlation or probs.size < 2 or simulations <= 0:
        return CorrelatedProbability(independent, independent, 1.0, 0.0)

    factor = cholesky_factor(correlation_matrix)
    draws = generate_correlated_uniform(factor, rng=rng, size=simulations)
    correlated = float(np.all(draws <= probs, axis=1).mean())
    ratio = correlated / independent if independent > 0 else 1.0
    return CorrelatedProbability(
        independent_probability=independent,
        correlated_probability=correlated,
        probability_ratio=ratio,
        correlation_impact=(correlated - independent) * 100,
    )


@dataclass(frozen=True)
class QuickCorrelationAnalysis:
    correlation_matrix: CorrelationMatrix
    independent_probability: float
    estimated_correlated_probability: float
    correlation_adjustment: float
    warnings: tuple[str, ...]


def quick_correlation_analysis(
    legs: Sequence[Leg],
    observations: pd.DataFrame | None = None,
    config: CorrelationConfig = DEFAULT_CORRELATION_CONFIG,
) -> QuickCorrelationAnalysis:
    """Closed-form correlation adjustment for fast feedback without sampling."""
    correlation_matrix = build_correlation_matrix(legs, observations=observations, config=config)
    independent = float(np.prod([leg.implied_probability for leg in legs])) if legs else 0.0
    avg = correlation_matrix.avg_correlation
    n = len(legs)
    adjustment = 1 + avg * 0.3 * (n - 1) / n if n else 1.0
    estimated = min(0.95, independent * adjustment)

    warnings: list[str] = []
    if correlation_matrix.has_high_correlation:
        for corr in correlation_matrix.correlations:
            if corr.correlation > config.high_correlation_threshold:
                warnings.append(
                    f"Legs {corr.leg_index_1 + 1} & {corr.leg_index_2 + 1} are "
                    f"{corr.correlation * 100:.0f}% correlated ({corr.correlation_type.replace('_', ' ')})"
                )
    if avg > 0.2:
        warnings.append(f"Average correlation of {avg * 100:.0f}% detected - independent odds are misleading")

    return QuickCorrelationAnalysis(
        correlation_matrix=correlation_matrix,
        independent_probability=independent,
        estimated_correlated_probability=estimated,
        correlation_adjustment=adjustment,
        warnings=tuple(warnings),
    )


def format_correlation_impact(impact: float) -> str:
    if abs(impact) < 0.1:
        return "No significant impact"
    if impact > 0:
        return f"+{impact:.2f}% more likely to hit"
    return f"{impact:.2f}% less likely to hit"


def correlation_severity(avg_correlation: float) -> Literal["none", "low", "medium", "high"]:
    if avg_correlation < 0.1:
        return "none"
    if avg_correlation < 0.25:
        return "low"
    if avg_correlation < 0.5:
        return "medium"
    return "high"

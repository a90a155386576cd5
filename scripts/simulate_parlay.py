from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd

from parlay_risk.parlay import Leg, ParlaySimulation
from parlay_risk.settings import EngineSettings, load_dotenv, make_rng
from parlay_risk.simulation import (
    ComparativeResult,
    run_comparative_simulation,
    run_correlated_comparative_simulation,
)
from parlay_risk.upsets import DEFAULT_UPSET_FACTORS, NO_UPSET_FACTORS

REQUIRED_COLUMNS = ("description", "odds")
OPTIONAL_COLUMNS = ("game", "team", "player", "market")


def _optional_text(row: pd.Series, column: str) -> str | None:
    if column not in row or pd.isna(row[column]):
        return None
    text = str(row[column]).strip()
    return text or None


def load_parlays(path: str | Path, stake: float, parlay_column: str = "parlay") -> list[ParlaySimulation]:
    """Read legs from a CSV and group them into parlays by ``parlay_column``."""
    df = pd.read_csv(path)
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"legs CSV missing columns: {missing}")
    odds = pd.to_numeric(df["odds"], errors="coerce")
    if odds.isna().any():
        bad_rows = [int(idx) + 2 for idx in df.index[odds.isna()]]
        raise ValueError(f"non-numeric odds on CSV lines {bad_rows}")
    df = df.assign(odds=odds)
    if parlay_column not in df.columns:
        df = df.assign(**{parlay_column: 1})

    parlays: list[ParlaySimulation] = []
    for _, group in df.groupby(parlay_column, sort=False):
        legs = [
            Leg(
                description=str(row["description"]),
                odds=float(row["odds"]),
                **{column: _optional_text(row, column) for column in OPTIONAL_COLUMNS},
            )
            for _, row in group.iterrows()
        ]
        parlays.append(ParlaySimulation.from_legs(legs, stake))
    return parlays


def format_report(parlays: list[ParlaySimulation], comparison: ComparativeResult) -> list[str]:
    lines: list[str] = []
    for parlay, result in zip(parlays, comparison.results):
        pct = result.percentiles
        lines.append(f"Parlay {result.parlay_index + 1} ({len(parlay.legs)} legs, payout {parlay.potential_payout:.2f})")
        lines.append(f"  Win rate: {result.win_rate:.2%} (pure odds {result.upset_stats.pure_odds_win_rate:.2%})")
        correlated_rate = getattr(result, "independent_win_rate", None)
        if correlated_rate is not None:
            lines.append(f"  Independent-leg win rate: {correlated_rate:.2%}")
        lines.append(f"  Expected profit: {result.expected_profit:.2f}")
        lines.append(
            f"  Profit percentiles: p5={pct.p5:.2f} p25={pct.p25:.2f} p50={pct.p50:.2f} "
            f"p75={pct.p75:.2f} p95={pct.p95:.2f}"
        )
    if comparison.results:
        lines.append(f"Best by win rate: Parlay {comparison.best_by_win_rate + 1}")
        lines.append(f"Best by expected profit: Parlay {comparison.best_by_expected_profit + 1}")
    for risk in comparison.weakest_legs:
        lines.append(
            f"Weakest leg in Parlay {risk.parlay_index + 1}: {risk.description} "
            f"({risk.adjusted_probability:.1%})"
        )
    return lines


def main() -> int:
    load_dotenv()
    settings = EngineSettings.from_env()
    parser = argparse.ArgumentParser(description="Monte Carlo simulation of parlays from a legs CSV.")
    parser.add_argument("--legs-csv", required=True, help="CSV with description, odds and optional metadata.")
    parser.add_argument("--parlay-column", default="parlay", help="Column grouping legs into parlays.")
    parser.add_argument("--stake", type=float, default=10.0, help="Stake per parlay.")
    parser.add_argument(
        "--iterations",
        type=int,
        default=settings.monte_carlo_iterations,
        help="Trials per parlay.",
    )
    parser.add_argument("--correlated", action="store_true", help="Sample legs through the correlation model.")
    parser.add_argument("--no-upsets", action="store_true", help="Disable upset-factor adjustments.")
    parser.add_argument("--seed", type=int, default=settings.seed, help="Random seed.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level.")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    parlays = load_parlays(args.legs_csv, stake=args.stake, parlay_column=args.parlay_column)
    if not parlays:
        print("No legs found.")
        return 1
    factors = NO_UPSET_FACTORS if args.no_upsets else DEFAULT_UPSET_FACTORS
    rng = make_rng(args.seed)
    if args.correlated:
        comparison = run_correlated_comparative_simulation(parlays, args.iterations, factors, rng=rng)
    else:
        comparison = run_comparative_simulation(parlays, args.iterations, factors, rng=rng)

    for line in format_report(parlays, comparison):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import argparse
import logging

from parlay_risk.bankroll import WhatIfResults, run_what_if_comparison
from parlay_risk.kelly import KellyResult, calculate_kelly
from parlay_risk.odds import american_to_decimal
from parlay_risk.settings import EngineSettings, load_dotenv, make_rng


def format_summary(kelly: KellyResult, what_if: WhatIfResults, bankroll: float) -> list[str]:
    lines = [
        f"Full Kelly fraction: {kelly.full_kelly_fraction:.2%}",
        f"Recommended stake: {kelly.recommended_stake:.2f} ({kelly.adjusted_kelly_fraction:.2%}, {kelly.risk_level})",
        f"Edge: {kelly.edge:.2f}%",
    ]
    if kelly.warning:
        lines.append(f"Warning: {kelly.warning}")
    for name in ("full_kelly", "half_kelly", "quarter_kelly"):
        projection = getattr(what_if, name)
        final = projection.final_percentiles
        lines.append(
            f"{name}: median {final.p50:.2f} (p5 {final.p5:.2f}, p95 {final.p95:.2f}) "
            f"growth {projection.growth_percent:+.1f}% "
            f"profit {projection.probability_of_profit:.1%} ruin {projection.probability_of_ruin:.1%} "
            f"drawdown {projection.average_max_drawdown:.1f}% sharpe {projection.sharpe_ratio:.2f}"
        )
    lines.append(f"Starting bankroll: {bankroll:.2f}")
    return lines


def main() -> int:
    load_dotenv()
    settings = EngineSettings.from_env()
    parser = argparse.ArgumentParser(description="Compare full, half and quarter Kelly bankroll growth.")
    parser.add_argument("--bankroll", type=float, default=1000.0, help="Starting bankroll.")
    parser.add_argument("--win-prob", type=float, default=0.55, help="Win probability per bet (0-1).")
    parser.add_argument("--american-odds", type=float, default=100.0, help="American odds per bet.")
    parser.add_argument("--days", type=int, default=30, help="Days to simulate.")
    parser.add_argument("--bets-per-day", type=int, default=3, help="Bets placed per day.")
    parser.add_argument("--paths", type=int, default=settings.bankroll_paths, help="Simulated bankroll paths.")
    parser.add_argument("--seed", type=int, default=settings.seed, help="Random seed.")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level.")
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    decimal_odds = american_to_decimal(args.american_odds)
    kelly = calculate_kelly(args.win_prob, decimal_odds, args.bankroll)
    what_if = run_what_if_comparison(
        args.bankroll,
        args.win_prob,
        decimal_odds,
        days=args.days,
        bets_per_day=args.bets_per_day,
        iterations=args.paths,
        rng=make_rng(args.seed),
    )
    for line in format_summary(kelly, what_if, args.bankroll):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

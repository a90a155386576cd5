from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

import numpy as np

ENV_PREFIX = "PARLAY_RISK_"


def load_dotenv(path: str = ".env") -> tuple[str, ...]:
    """Populate os.environ from a KEY=VALUE file without overriding existing values.

    Lines may carry a shell ``export`` prefix. Returns the keys that were set.
    """
    if not os.path.exists(path):
        return ()
    applied: list[str] = []
    with open(path, "r", encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            key, sep, value = line.partition("=")
            key = key.strip()
            if line.startswith("#") or not sep or not key or key in os.environ:
                continue
            os.environ[key] = value.strip().strip('"').strip("'")
            applied.append(key)
    return tuple(applied)


def _parse_int(env: Mapping[str, str], key: str, default: int | None, minimum: int = 0) -> int | None:
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{ENV_PREFIX}{key} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class EngineSettings:
    monte_carlo_iterations: int = 100_000
    bankroll_paths: int = 1000
    seed: int | None = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> EngineSettings:
        """Read ``PARLAY_RISK_*`` variables, falling back to the defaults."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            monte_carlo_iterations=_parse_int(env, "ITERATIONS", defaults.monte_carlo_iterations),
            bankroll_paths=_parse_int(env, "BANKROLL_PATHS", defaults.bankroll_paths),
            seed=_parse_int(env, "SEED", defaults.seed),
            log_level=env.get(ENV_PREFIX + "LOG_LEVEL", defaults.log_level).upper(),
        )


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Seeded generator for reproducible runs; ``None`` seeds from OS entropy."""
    return np.random.default_rng(seed)

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Sequence

from .odds import american_to_decimal, american_to_prob, validate_american_odds

_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "v"}
_NON_NAME = re.compile(r"[^a-z0-9\s]")
_MULTI_SPACE = re.compile(r"\s+")


def normalize_player_name(name: str) -> str:
    """Normalize player names so the same player matches across legs.

    ``"Dončić, Luka"`` and ``"Luka Doncic"`` both become ``"luka doncic"``.
    """
    surname, comma, given = name.partition(",")
    if comma and given.strip():
        name = f"{given} {surname}"
    folded = "".join(
        ch for ch in unicodedata.normalize("NFKD", name.lower()) if not unicodedata.combining(ch)
    )
    tokens = _MULTI_SPACE.split(_NON_NAME.sub(" ", folded).strip())
    return " ".join(token for token in tokens if token and token not in _SUFFIXES)


@dataclass(frozen=True)
class Leg:
    """One proposition within a parlay.

    Attributes:
        description: free text as shown on the bet slip
        odds: American odds, e.g. +150 or -200
        game: optional event identifier; legs sharing it are same-game
        team: optional team abbreviation the leg depends on
        player: optional player name for player props
        market: optional market key such as ``player_points`` or ``spreads``
    """

    description: str
    odds: float
    game: str | None = None
    team: str | None = None
    player: str | None = None
    market: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "odds", validate_american_odds(self.odds))

    @property
    def implied_probability(self) -> float:
        return american_to_prob(self.odds)

    @property
    def decimal_odds(self) -> float:
        return american_to_decimal(self.odds)


@dataclass(frozen=True)
class ParlaySimulation:
    legs: tuple[Leg, ...]
    stake: float
    potential_payout: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "legs", tuple(self.legs))
        for name in ("stake", "potential_payout"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} must be a finite number, got {value!r}")
        if self.stake <= 0:
            raise ValueError("stake must be positive")
        if self.potential_payout < 0:
            raise ValueError("potential_payout must be non-negative")

    @classmethod
    def from_legs(cls, legs: Iterable[Leg], stake: float) -> ParlaySimulation:
        """Build a parlay whose payout is stake times the product of decimal odds."""
        legs_tuple = tuple(legs)
        return cls(legs=legs_tuple, stake=stake, potential_payout=stake * combined_decimal_odds(legs_tuple))

    @property
    def profit_on_win(self) -> float:
        return self.potential_payout - self.stake


def combined_decimal_odds(legs: Sequence[Leg]) -> float:
    return math.prod(leg.decimal_odds for leg in legs)

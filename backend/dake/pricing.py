"""Parimutuel odds and payout calculations.

These pure functions back the bet preview shown before a wager is signed.
The ledger computes the authoritative locked payout itself when the bet
executes; values here are estimates from the pools observed at preview time.

Formulas:
    odds(side)        = total_pool / side_pool
    probability(side) = side_pool / total_pool * 100
    payout            = stake / (side_pool + stake) * (total_pool + stake)
"""

import math
from enum import Enum

from pydantic import BaseModel

EVEN_ODDS = 2.0
EVEN_PROBABILITY = 50.0


class Side(str, Enum):
    YES = "yes"
    NO = "no"

    @property
    def bit(self) -> int:
        return 1 if self is Side.YES else 0

    @property
    def opposite(self) -> "Side":
        return Side.NO if self is Side.YES else Side.YES

    @classmethod
    def from_bit(cls, bit: int) -> "Side":
        if bit not in (0, 1):
            raise ValueError(f"Side bit must be 0 or 1, got {bit}")
        return cls.YES if bit == 1 else cls.NO


class OddsSnapshot(BaseModel):
    """Instantaneous odds derived from pool totals. Never persisted."""

    yes_odds: float
    no_odds: float
    yes_probability: float
    no_probability: float


class PayoutQuote(BaseModel):
    """Payout a bettor would lock in if the chosen side wins."""

    side: Side
    stake: float
    payout: float
    profit: float
    multiplier: float
    implied_probability: float
    new_yes_pool: float
    new_no_pool: float


def _check_pools(yes_pool: float, no_pool: float) -> None:
    if yes_pool < 0 or no_pool < 0:
        raise ValueError(f"Pools must be non-negative, got yes={yes_pool} no={no_pool}")


def calculate_odds(yes_pool: float, no_pool: float) -> OddsSnapshot:
    """Decimal odds and implied probabilities; even odds for an empty market."""
    _check_pools(yes_pool, no_pool)
    total = yes_pool + no_pool

    if total == 0:
        return OddsSnapshot(
            yes_odds=EVEN_ODDS,
            no_odds=EVEN_ODDS,
            yes_probability=EVEN_PROBABILITY,
            no_probability=EVEN_PROBABILITY,
        )

    return OddsSnapshot(
        yes_odds=total / yes_pool if yes_pool > 0 else math.inf,
        no_odds=total / no_pool if no_pool > 0 else math.inf,
        yes_probability=yes_pool / total * 100,
        no_probability=no_pool / total * 100,
    )


def calculate_payout(
    yes_pool: float,
    no_pool: float,
    side: Side,
    stake: float,
) -> PayoutQuote | None:
    """Simulate adding `stake` to `side` and return the resulting payout.

    Returns None for a non-positive stake.
    """
    _check_pools(yes_pool, no_pool)
    if stake <= 0:
        return None

    new_yes_pool = yes_pool + stake if side is Side.YES else yes_pool
    new_no_pool = no_pool + stake if side is Side.NO else no_pool
    new_total = new_yes_pool + new_no_pool
    side_pool = new_yes_pool if side is Side.YES else new_no_pool

    payout = stake / side_pool * new_total

    return PayoutQuote(
        side=side,
        stake=stake,
        payout=payout,
        profit=payout - stake,
        multiplier=payout / stake,
        implied_probability=side_pool / new_total * 100,
        new_yes_pool=new_yes_pool,
        new_no_pool=new_no_pool,
    )


def locked_payout_lamports(yes_pool: int, no_pool: int, side: Side, amount: int) -> int:
    """Integer payout in lamports, floored the way the program rounds it."""
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    _check_pools(yes_pool, no_pool)

    side_after = (yes_pool if side is Side.YES else no_pool) + amount
    total_after = yes_pool + no_pool + amount
    if side_after == 0:
        return amount
    return amount * total_after // side_after

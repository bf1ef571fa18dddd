#!/usr/bin/env python3
"""Tests for the parimutuel pricing engine."""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from dake.pricing import Side, calculate_odds, calculate_payout, locked_payout_lamports


@pytest.mark.parametrize("yes_pool,no_pool", [(1, 1), (3, 1), (0.5, 7.25), (1_000_000, 3)])
def test_odds_times_pool_equals_total(yes_pool: float, no_pool: float) -> None:
    odds = calculate_odds(yes_pool, no_pool)
    total = yes_pool + no_pool

    assert odds.yes_odds * yes_pool == pytest.approx(total)
    assert odds.no_odds * no_pool == pytest.approx(total)
    assert odds.yes_probability + odds.no_probability == pytest.approx(100)


def test_empty_market_has_even_odds() -> None:
    odds = calculate_odds(0, 0)

    assert odds.yes_odds == 2.0
    assert odds.no_odds == 2.0
    assert odds.yes_probability == 50
    assert odds.no_probability == 50


def test_one_sided_market_has_infinite_odds_on_empty_side() -> None:
    odds = calculate_odds(5, 0)

    assert odds.yes_odds == 1.0
    assert math.isinf(odds.no_odds)
    assert odds.no_probability == 0


def test_negative_pool_rejected() -> None:
    with pytest.raises(ValueError):
        calculate_odds(-1, 2)


def test_first_bet_on_empty_market() -> None:
    # Sole bettor: the pool after the bet is the stake itself
    quote = calculate_payout(0, 0, Side.YES, 1)

    assert quote is not None
    assert quote.payout == 1
    assert quote.profit == 0
    assert quote.multiplier == 1.0
    assert quote.implied_probability == 100
    assert quote.new_yes_pool == 1
    assert quote.new_no_pool == 0


def test_bet_on_underdog() -> None:
    quote = calculate_payout(3, 1, Side.NO, 1)

    assert quote is not None
    assert quote.new_no_pool == 2
    assert quote.new_yes_pool + quote.new_no_pool == 5
    assert quote.payout == 2.5
    assert quote.profit == 1.5
    assert quote.multiplier == 2.5
    assert quote.implied_probability == pytest.approx(100 * 2 / 5)


@pytest.mark.parametrize("stake", [0, -1, -0.5])
def test_non_positive_stake_has_no_payout(stake: float) -> None:
    assert calculate_payout(3, 1, Side.YES, stake) is None


def test_payout_is_pure() -> None:
    pools = {"yes": 3.0, "no": 1.0}
    captured = (pools["yes"], pools["no"])

    first = calculate_payout(*captured, Side.YES, 2)
    pools["yes"] += 100
    second = calculate_payout(*captured, Side.YES, 2)

    assert first == second


def test_locked_payout_lamports_floors() -> None:
    # 1 on NO into yes=3, no=1: 1 * 5 // 2
    assert locked_payout_lamports(3, 1, Side.NO, 1) == 2
    assert locked_payout_lamports(0, 0, Side.YES, 1_000_000_000) == 1_000_000_000
    assert (
        locked_payout_lamports(3_000_000_000, 1_000_000_000, Side.NO, 1_000_000_000)
        == 2_500_000_000
    )


def test_locked_payout_lamports_rejects_zero_amount() -> None:
    with pytest.raises(ValueError):
        locked_payout_lamports(1, 1, Side.YES, 0)


def test_side_helpers() -> None:
    assert Side.YES.bit == 1
    assert Side.NO.bit == 0
    assert Side.from_bit(1) is Side.YES
    assert Side.YES.opposite is Side.NO
    with pytest.raises(ValueError):
        Side.from_bit(2)

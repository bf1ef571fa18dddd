#!/usr/bin/env python3
"""Tests for account decoding, PDAs and instruction encoding."""

import hashlib
import struct
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from solders.keypair import Keypair

from dake.program import (
    INSTRUCTIONS_SYSVAR_ID,
    LayoutError,
    Market,
    MarketStatus,
    Position,
    allowance_address,
    handle_from_le_bytes,
    handle_to_le_bytes,
    market_address,
    position_address,
    vault_address,
)
from dake.program.errors import describe_error, parse_instruction_error
from dake.program.instructions import (
    check_winner,
    claim_winnings,
    close_market,
    create_market,
    instruction_selector,
    place_bet,
    resolve_market,
)
from dake.program.layout import POSITION_IS_WINNER_OFFSET, read_is_winner_handle

from factories import PROGRAM, market_bytes, position_bytes


def test_handle_le_bytes_is_sixteen_bytes_little_endian() -> None:
    assert handle_to_le_bytes(1) == b"\x01" + b"\x00" * 15
    assert handle_to_le_bytes(12345) == (12345).to_bytes(16, "little")
    assert handle_from_le_bytes(handle_to_le_bytes(2**100 + 7)) == 2**100 + 7


def test_handle_le_bytes_range_checked() -> None:
    with pytest.raises(ValueError):
        handle_to_le_bytes(-1)
    with pytest.raises(ValueError):
        handle_to_le_bytes(2**128)


def test_position_decodes_fixed_offsets() -> None:
    market = Keypair().pubkey()
    owner = Keypair().pubkey()
    data = position_bytes(
        market,
        owner,
        amount=5,
        locked_payout=9,
        encrypted_side_handle=111,
        is_winner_handle=2**70 + 3,
        claimed=True,
        bump=200,
    )

    position = Position.from_account_data("pos", data)

    assert position.market == str(market)
    assert position.owner == str(owner)
    assert position.amount == 5
    assert position.locked_payout == 9
    assert position.encrypted_side_handle == 111
    assert position.is_winner_handle == 2**70 + 3
    assert position.claimed is True
    assert position.bump == 200
    assert position.is_checked
    assert data[POSITION_IS_WINNER_OFFSET:POSITION_IS_WINNER_OFFSET + 16] == handle_to_le_bytes(
        2**70 + 3
    )
    assert read_is_winner_handle(data) == 2**70 + 3


def test_position_rejects_wrong_discriminator() -> None:
    data = bytearray(position_bytes(Keypair().pubkey(), Keypair().pubkey()))
    data[0] ^= 0xFF
    with pytest.raises(LayoutError):
        Position.from_account_data("pos", bytes(data))


def test_market_decodes_variable_question() -> None:
    authority = Keypair().pubkey()
    data = market_bytes(
        authority,
        market_id=42,
        question="Will BTC close above 100k?",
        status=MarketStatus.RESOLVED_NO,
        total_yes=3,
        total_no=1,
        participants=4,
    )

    market = Market.from_account_data("mkt", data)

    assert market.authority == str(authority)
    assert market.market_id == 42
    assert market.question == "Will BTC close above 100k?"
    assert market.is_resolved
    assert market.outcome is not None and market.outcome.value == "no"
    assert market.total_pool == 4
    assert market.odds().yes_odds == pytest.approx(4 / 3)


def test_market_truncated_raises_layout_error() -> None:
    data = market_bytes(Keypair().pubkey())
    with pytest.raises(LayoutError):
        Market.from_account_data("mkt", data[:-10])


def test_market_unknown_status_raises_layout_error() -> None:
    data = market_bytes(Keypair().pubkey(), status=9)
    with pytest.raises(LayoutError):
        Market.from_account_data("mkt", data)


def test_pdas_are_deterministic() -> None:
    market = Keypair().pubkey()
    owner = Keypair().pubkey()

    assert position_address(market, owner, PROGRAM.program_pubkey) == position_address(
        market, owner, PROGRAM.program_pubkey
    )
    assert vault_address(market, PROGRAM.program_pubkey) != vault_address(
        owner, PROGRAM.program_pubkey
    )
    assert allowance_address(5, owner, PROGRAM.oracle_program_pubkey) != allowance_address(
        6, owner, PROGRAM.oracle_program_pubkey
    )


def test_place_bet_encoding() -> None:
    bettor = Keypair().pubkey()
    market = Keypair().pubkey()
    ix = place_bet(PROGRAM, bettor, market, b"\xde\xad", 1000, 1)

    selector = hashlib.sha256(b"global:place_bet").digest()[:8]
    assert bytes(ix.data) == selector + struct.pack("<I", 2) + b"\xde\xad" + struct.pack("<QB", 1000, 1)
    assert ix.program_id == PROGRAM.program_pubkey
    assert ix.accounts[0].pubkey == bettor
    assert ix.accounts[0].is_signer
    assert ix.accounts[-1].pubkey == PROGRAM.oracle_program_pubkey


def test_check_winner_remaining_accounts_only_when_granting() -> None:
    checker = Keypair().pubkey()
    market = Keypair().pubkey()
    position = Keypair().pubkey()
    allowance = Keypair().pubkey()

    plain = check_winner(PROGRAM, checker, market, position)
    granting = check_winner(PROGRAM, checker, market, position, allowance=allowance, allowed=checker)

    assert len(plain.accounts) == 5
    assert len(granting.accounts) == 7
    assert granting.accounts[5].pubkey == allowance
    assert granting.accounts[5].is_writable
    assert granting.accounts[6].pubkey == checker
    assert not granting.accounts[1].is_writable


def test_claim_winnings_accounts_include_instructions_sysvar() -> None:
    winner = Keypair().pubkey()
    market = Keypair().pubkey()
    position = Keypair().pubkey()
    ix = claim_winnings(PROGRAM, winner, market, position, b"3039", b"\x01" + b"\x00" * 15)

    keys = [meta.pubkey for meta in ix.accounts]
    assert keys[:3] == [winner, market, position]
    assert keys[3] == vault_address(market, PROGRAM.program_pubkey)[0]
    assert keys[4] == INSTRUCTIONS_SYSVAR_ID
    assert keys[6] == PROGRAM.oracle_program_pubkey


def test_parse_instruction_error() -> None:
    assert parse_instruction_error({"InstructionError": [1, {"Custom": 6008}]}) == (1, 6008)
    assert parse_instruction_error({"InstructionError": [0, "InvalidAccountData"]}) == (0, None)
    assert parse_instruction_error("AccountNotFound") == (None, None)
    assert describe_error({"InstructionError": [0, {"Custom": 6006}]}).startswith("ALREADY_CLAIMED")


def test_admin_instructions_encoding() -> None:
    authority = Keypair().pubkey()
    market, _ = market_address(3, PROGRAM.program_pubkey)

    create = create_market(PROGRAM, authority, 3, "Rain?", 1_700_000_000)
    assert bytes(create.data) == (
        instruction_selector("create_market")
        + struct.pack("<Q", 3)
        + struct.pack("<I", 5)
        + b"Rain?"
        + struct.pack("<q", 1_700_000_000)
    )
    assert create.accounts[1].pubkey == market
    assert create.accounts[2].pubkey == vault_address(market, PROGRAM.program_pubkey)[0]

    assert bytes(close_market(PROGRAM, authority, market).data) == instruction_selector("close_market")
    assert bytes(resolve_market(PROGRAM, authority, market, True).data) == (
        instruction_selector("resolve_market") + b"\x01"
    )


def test_create_market_rejects_long_question() -> None:
    with pytest.raises(ValueError):
        create_market(PROGRAM, Keypair().pubkey(), 1, "x" * 257, 0)

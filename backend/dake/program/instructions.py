"""Instruction builders for the Dake program.

Each instruction's data is the 8-byte Anchor selector (sha256("global:<name>")[:8])
followed by its Borsh-encoded arguments. Account order matches the program's
account structs exactly; the program rejects anything else.
"""

import hashlib
import struct

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .config import INSTRUCTIONS_SYSVAR_ID, SYSTEM_PROGRAM_ID, ProgramConfig
from .pda import market_address, position_address, vault_address


def instruction_selector(name: str) -> bytes:
    return hashlib.sha256(f"global:{name}".encode()).digest()[:8]


def encode_bytes(value: bytes) -> bytes:
    """Borsh Vec<u8>: u32 little-endian length followed by the bytes."""
    return struct.pack("<I", len(value)) + value


def encode_string(value: str) -> bytes:
    return encode_bytes(value.encode("utf-8"))


def _signer(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=True, is_writable=True)


def _writable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=True)


def _readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey=pubkey, is_signer=False, is_writable=False)


def create_market(
    config: ProgramConfig,
    authority: Pubkey,
    market_id: int,
    question: str,
    resolution_time: int,
) -> Instruction:
    if len(question.encode("utf-8")) > 256:
        raise ValueError("Question too long - max 256 bytes")

    program_id = config.program_pubkey
    market, _ = market_address(market_id, program_id)
    vault, _ = vault_address(market, program_id)
    data = (
        instruction_selector("create_market")
        + struct.pack("<Q", market_id)
        + encode_string(question)
        + struct.pack("<q", resolution_time)
    )
    return Instruction(
        program_id,
        data,
        [
            _signer(authority),
            _writable(market),
            _writable(vault),
            _readonly(SYSTEM_PROGRAM_ID),
        ],
    )


def place_bet(
    config: ProgramConfig,
    bettor: Pubkey,
    market: Pubkey,
    encrypted_side: bytes,
    amount: int,
    side_bit: int,
) -> Instruction:
    if side_bit not in (0, 1):
        raise ValueError(f"side_bit must be 0 or 1, got {side_bit}")

    program_id = config.program_pubkey
    position, _ = position_address(market, bettor, program_id)
    vault, _ = vault_address(market, program_id)
    data = (
        instruction_selector("place_bet")
        + encode_bytes(encrypted_side)
        + struct.pack("<QB", amount, side_bit)
    )
    return Instruction(
        program_id,
        data,
        [
            _signer(bettor),
            _writable(market),
            _writable(position),
            _writable(vault),
            _readonly(SYSTEM_PROGRAM_ID),
            _readonly(config.oracle_program_pubkey),
        ],
    )


def close_market(config: ProgramConfig, authority: Pubkey, market: Pubkey) -> Instruction:
    return Instruction(
        config.program_pubkey,
        instruction_selector("close_market"),
        [_signer(authority), _writable(market)],
    )


def resolve_market(
    config: ProgramConfig, authority: Pubkey, market: Pubkey, outcome: bool
) -> Instruction:
    return Instruction(
        config.program_pubkey,
        instruction_selector("resolve_market") + struct.pack("<?", outcome),
        [_signer(authority), _writable(market)],
    )


def check_winner(
    config: ProgramConfig,
    checker: Pubkey,
    market: Pubkey,
    position: Pubkey,
    allowance: Pubkey | None = None,
    allowed: Pubkey | None = None,
) -> Instruction:
    """Build check_winner; pass `allowance`/`allowed` to also grant decrypt access."""
    accounts = [
        _signer(checker),
        _readonly(market),
        _writable(position),
        _readonly(SYSTEM_PROGRAM_ID),
        _readonly(config.oracle_program_pubkey),
    ]
    if allowance is not None:
        accounts.append(_writable(allowance))
        accounts.append(_readonly(allowed or checker))

    return Instruction(config.program_pubkey, instruction_selector("check_winner"), accounts)


def grant_decrypt_access(
    config: ProgramConfig,
    owner: Pubkey,
    position: Pubkey,
    allowance: Pubkey,
) -> Instruction:
    return Instruction(
        config.program_pubkey,
        instruction_selector("grant_decrypt_access"),
        [
            _signer(owner),
            _readonly(position),
            _readonly(SYSTEM_PROGRAM_ID),
            _readonly(config.oracle_program_pubkey),
            _writable(allowance),
            _readonly(owner),
        ],
    )


def claim_winnings(
    config: ProgramConfig,
    winner: Pubkey,
    market: Pubkey,
    position: Pubkey,
    handle_bytes: bytes,
    plaintext_bytes: bytes,
) -> Instruction:
    program_id = config.program_pubkey
    vault, _ = vault_address(market, program_id)
    data = (
        instruction_selector("claim_winnings")
        + encode_bytes(handle_bytes)
        + encode_bytes(plaintext_bytes)
    )
    return Instruction(
        program_id,
        data,
        [
            _signer(winner),
            _writable(market),
            _writable(position),
            _writable(vault),
            _readonly(INSTRUCTIONS_SYSVAR_ID),
            _readonly(SYSTEM_PROGRAM_ID),
            _readonly(config.oracle_program_pubkey),
        ],
    )

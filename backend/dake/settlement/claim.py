"""Claim transaction assembly.

The program recomputes the attested message over the exact bytes submitted,
so the handle and plaintext encodings here must match the oracle's:

- handle: lowercase hex of the decimal handle, no padding, as ASCII bytes
  (12345 -> b"3039");
- plaintext: 16-byte little-endian u128.

Neither is the 16-byte binary handle used in account state
(see dake.program.layout.handle_to_le_bytes).
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from dake.exceptions import StaleAttestation
from dake.program import Position, ProgramConfig
from dake.program.instructions import claim_winnings
from dake.program.layout import MAX_HANDLE
from dake.services.oracle import DecryptionResult, parse_plaintext_int

logger = logging.getLogger(__name__)

U64_MASK = (1 << 64) - 1


def handle_to_decimal(handle: int | str) -> int:
    value = int(handle)
    if value < 0 or value > MAX_HANDLE:
        raise ValueError(f"Handle out of u128 range: {handle}")
    return value


def handle_to_claim_bytes(handle: int | str) -> bytes:
    """Decimal handle -> hex string -> ASCII bytes."""
    return format(handle_to_decimal(handle), "x").encode("ascii")


def plaintext_to_claim_bytes(plaintext: str | int) -> bytes:
    """Decrypted value as a 16-byte little-endian u128 (low word first)."""
    value = parse_plaintext_int(plaintext)
    return struct.pack("<QQ", value & U64_MASK, value >> 64)


@dataclass
class ClaimTransaction:
    instructions: list[Instruction]
    handle_bytes: bytes
    plaintext_bytes: bytes
    signature_instruction_count: int
    result: DecryptionResult


class ClaimTransactionBuilder:
    def __init__(self, program: ProgramConfig | None = None):
        self.program = program or ProgramConfig()

    def build(self, position: Position, result: DecryptionResult) -> ClaimTransaction:
        """Signature checks from `result`, in order, then claim_winnings."""
        if result.handle != position.is_winner_handle:
            raise StaleAttestation(
                f"Decryption is for handle {result.handle}, position "
                f"{position.address} holds {position.is_winner_handle}"
            )

        handle_bytes = handle_to_claim_bytes(result.handle)
        plaintext_bytes = plaintext_to_claim_bytes(result.plaintext)

        signature_instructions = result.instructions()
        claim = claim_winnings(
            self.program,
            winner=Pubkey.from_string(position.owner),
            market=position.market_pubkey,
            position=position.pubkey,
            handle_bytes=handle_bytes,
            plaintext_bytes=plaintext_bytes,
        )

        logger.debug(
            f"Built claim for {position.address} with "
            f"{len(signature_instructions)} signature instruction(s)"
        )
        return ClaimTransaction(
            instructions=[*signature_instructions, claim],
            handle_bytes=handle_bytes,
            plaintext_bytes=plaintext_bytes,
            signature_instruction_count=len(signature_instructions),
            result=result,
        )

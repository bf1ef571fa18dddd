"""Ed25519 signature-verification instructions carried by oracle attestations.

Instruction data layout (native Ed25519 program):

    [num_signatures: u8][padding: u8]
    num_signatures x [signature_offset, signature_instruction_index,
                      public_key_offset, public_key_instruction_index,
                      message_data_offset, message_data_size,
                      message_instruction_index]  (u16 little-endian each)
    followed by the referenced public keys, signatures and messages.

An instruction index of 0xFFFF refers to the instruction's own data.
"""

import logging
import struct

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from dake.exceptions import AttestationInvalid
from dake.program.config import ED25519_PROGRAM_ID

from .models import SignatureInstruction

logger = logging.getLogger(__name__)

HEADER_SIZE = 2
OFFSETS_SIZE = 14
CURRENT_INSTRUCTION = 0xFFFF
PUBLIC_KEY_SIZE = 32
SIGNATURE_SIZE = 64


def build_ed25519_instruction_data(public_key: bytes, signature: bytes, message: bytes) -> bytes:
    """Encode a single self-contained Ed25519 verification."""
    public_key_offset = HEADER_SIZE + OFFSETS_SIZE
    signature_offset = public_key_offset + PUBLIC_KEY_SIZE
    message_offset = signature_offset + SIGNATURE_SIZE
    offsets = struct.pack(
        "<7H",
        signature_offset,
        CURRENT_INSTRUCTION,
        public_key_offset,
        CURRENT_INSTRUCTION,
        message_offset,
        len(message),
        CURRENT_INSTRUCTION,
    )
    return bytes([1, 0]) + offsets + public_key + signature + message


def _slice(data: bytes, offset: int, size: int) -> bytes:
    if offset + size > len(data):
        raise AttestationInvalid(
            f"Ed25519 instruction offset {offset}+{size} exceeds data length {len(data)}"
        )
    return data[offset:offset + size]


def verify_ed25519_instruction(data: bytes) -> int:
    """Verify every self-contained signature in one instruction; return how many were checked."""
    if len(data) < HEADER_SIZE:
        raise AttestationInvalid("Ed25519 instruction data too short")

    count = data[0]
    if count == 0:
        raise AttestationInvalid("Ed25519 instruction carries no signatures")

    verified = 0
    for i in range(count):
        header = _slice(data, HEADER_SIZE + i * OFFSETS_SIZE, OFFSETS_SIZE)
        (
            sig_offset,
            sig_ix,
            key_offset,
            key_ix,
            msg_offset,
            msg_size,
            msg_ix,
        ) = struct.unpack("<7H", header)

        if (sig_ix, key_ix, msg_ix) != (CURRENT_INSTRUCTION,) * 3:
            logger.debug(f"Signature {i} references another instruction; skipping local check")
            continue

        public_key = _slice(data, key_offset, PUBLIC_KEY_SIZE)
        signature = _slice(data, sig_offset, SIGNATURE_SIZE)
        message = _slice(data, msg_offset, msg_size)

        try:
            Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
        except InvalidSignature as e:
            raise AttestationInvalid(f"Attestation signature {i} does not verify") from e
        verified += 1

    return verified


def verify_signature_instructions(instructions: list[SignatureInstruction]) -> int:
    """Check oracle attestations locally before paying fees to submit them."""
    if not instructions:
        raise AttestationInvalid("Oracle returned no signature-verification instructions")

    verified = 0
    for ix in instructions:
        if ix.program_id != str(ED25519_PROGRAM_ID):
            logger.debug(f"Skipping non-Ed25519 attestation instruction ({ix.program_id})")
            continue
        verified += verify_ed25519_instruction(ix.data)
    return verified

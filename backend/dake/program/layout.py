"""Binary layout of Dake program accounts.

Anchor accounts start with an 8-byte discriminator (sha256("account:<Name>")[:8])
followed by Borsh-encoded fields. Position is fixed-size; Market carries a
length-prefixed question string so its later fields are read sequentially.
"""

import hashlib
import struct

HANDLE_SIZE = 16
MAX_HANDLE = (1 << 128) - 1

# Position field offsets
POSITION_MARKET_OFFSET = 8
POSITION_OWNER_OFFSET = 40
POSITION_AMOUNT_OFFSET = 72
POSITION_LOCKED_PAYOUT_OFFSET = 80
POSITION_ENCRYPTED_SIDE_OFFSET = 88
POSITION_IS_WINNER_OFFSET = 104
POSITION_CLAIMED_OFFSET = 120
POSITION_BUMP_OFFSET = 121
POSITION_MIN_SIZE = 122


class LayoutError(ValueError):
    """Account data does not match the expected layout."""

    pass


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


POSITION_DISCRIMINATOR = account_discriminator("Position")
MARKET_DISCRIMINATOR = account_discriminator("Market")


def handle_to_le_bytes(handle: int) -> bytes:
    """Encode a handle as the 16-byte little-endian u128 stored in account state."""
    if not 0 <= handle <= MAX_HANDLE:
        raise ValueError(f"Handle out of u128 range: {handle}")
    return handle.to_bytes(HANDLE_SIZE, "little")


def handle_from_le_bytes(data: bytes) -> int:
    if len(data) != HANDLE_SIZE:
        raise ValueError(f"Handle must be {HANDLE_SIZE} bytes, got {len(data)}")
    return int.from_bytes(data, "little")


def _check_discriminator(data: bytes, expected: bytes, name: str) -> None:
    if len(data) < 8 or data[:8] != expected:
        raise LayoutError(f"Account data is not a {name} account")


def read_u64(data: bytes, offset: int) -> int:
    return struct.unpack_from("<Q", data, offset)[0]


def read_is_winner_handle(data: bytes) -> int:
    """Read the is-winner handle from raw Position account bytes."""
    _check_discriminator(data, POSITION_DISCRIMINATOR, "Position")
    if len(data) < POSITION_IS_WINNER_OFFSET + HANDLE_SIZE:
        raise LayoutError(f"Position account too short: {len(data)} bytes")
    return handle_from_le_bytes(
        data[POSITION_IS_WINNER_OFFSET:POSITION_IS_WINNER_OFFSET + HANDLE_SIZE]
    )


def decode_position_fields(data: bytes) -> dict:
    _check_discriminator(data, POSITION_DISCRIMINATOR, "Position")
    if len(data) < POSITION_MIN_SIZE:
        raise LayoutError(f"Position account too short: {len(data)} bytes")

    return {
        "market": data[POSITION_MARKET_OFFSET:POSITION_OWNER_OFFSET],
        "owner": data[POSITION_OWNER_OFFSET:POSITION_AMOUNT_OFFSET],
        "amount": read_u64(data, POSITION_AMOUNT_OFFSET),
        "locked_payout": read_u64(data, POSITION_LOCKED_PAYOUT_OFFSET),
        "encrypted_side_handle": handle_from_le_bytes(
            data[POSITION_ENCRYPTED_SIDE_OFFSET:POSITION_IS_WINNER_OFFSET]
        ),
        "is_winner_handle": handle_from_le_bytes(
            data[POSITION_IS_WINNER_OFFSET:POSITION_CLAIMED_OFFSET]
        ),
        "claimed": data[POSITION_CLAIMED_OFFSET] != 0,
        "bump": data[POSITION_BUMP_OFFSET],
    }


def decode_market_fields(data: bytes) -> dict:
    _check_discriminator(data, MARKET_DISCRIMINATOR, "Market")
    try:
        offset = 8
        authority = data[offset:offset + 32]
        offset += 32
        (market_id,) = struct.unpack_from("<Q", data, offset)
        offset += 8
        (question_len,) = struct.unpack_from("<I", data, offset)
        offset += 4
        question = data[offset:offset + question_len].decode("utf-8")
        offset += question_len
        resolution_time, status, total_yes, total_no, participants, bump = (
            struct.unpack_from("<qBQQIB", data, offset)
        )
    except (struct.error, UnicodeDecodeError) as e:
        raise LayoutError(f"Malformed Market account: {e}") from e

    return {
        "authority": authority,
        "market_id": market_id,
        "question": question,
        "resolution_time": resolution_time,
        "status": status,
        "total_yes_amount": total_yes,
        "total_no_amount": total_no,
        "participant_count": participants,
        "bump": bump,
    }

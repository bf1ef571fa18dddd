import logging

from dake.exceptions import EncodingFailed, InvalidSide
from dake.services.oracle import OracleAPIError, OracleClient

logger = logging.getLogger(__name__)


def ciphertext_to_bytes(ciphertext: str) -> bytes:
    """Convert an oracle hex ciphertext (optionally 0x-prefixed) into raw bytes."""
    text = ciphertext.strip()
    if text[:2] in ("0x", "0X"):
        text = text[2:]
    if not text:
        raise EncodingFailed("Oracle returned an empty ciphertext")
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise EncodingFailed(f"Ciphertext is not valid hex: {e}") from e


class PositionEncoder:
    """Encrypts a bet side (1 = YES, 0 = NO) for submission with place_bet."""

    def __init__(self, oracle: OracleClient):
        self.oracle = oracle

    async def encode(self, side_bit: int) -> bytes:
        if side_bit not in (0, 1):
            raise InvalidSide(f"Side must be 0 (NO) or 1 (YES), got {side_bit}")

        try:
            ciphertext = await self.oracle.encrypt(side_bit)
        except OracleAPIError as e:
            logger.error(f"Side encryption failed: {e}")
            raise EncodingFailed(f"Encryption service failed: {e}") from e

        encoded = ciphertext_to_bytes(ciphertext)
        logger.debug(f"Encoded side into {len(encoded)} ciphertext bytes")
        return encoded

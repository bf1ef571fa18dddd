"""Local keypair wallet: signs transactions and oracle authentication messages."""

import json
import logging
from pathlib import Path

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

logger = logging.getLogger(__name__)


class Wallet:
    def __init__(self, keypair: Keypair):
        self.keypair = keypair

    @property
    def pubkey(self) -> Pubkey:
        return self.keypair.pubkey()

    @property
    def address(self) -> str:
        return str(self.keypair.pubkey())

    def sign_transaction(self, message: Message, recent_blockhash: Hash) -> Transaction:
        return Transaction([self.keypair], message, recent_blockhash)

    def sign_message(self, message: bytes) -> bytes:
        return bytes(self.keypair.sign_message(message))

    @classmethod
    def from_base58(cls, secret: str) -> "Wallet":
        return cls(Keypair.from_base58_string(secret.strip()))

    @classmethod
    def from_file(cls, path: str | Path) -> "Wallet":
        """Load a Solana CLI keypair file (JSON array of 64 bytes)."""
        raw = json.loads(Path(path).read_text())
        return cls(Keypair.from_bytes(bytes(raw)))


def load_wallet(secret: str = "", path: str = "") -> Wallet | None:
    """Load a wallet from a base58 secret or keypair file; None if neither is set."""
    if secret:
        return Wallet.from_base58(secret)

    if path:
        key_path = Path(path).expanduser()
        if key_path.is_file():
            return Wallet.from_file(key_path)
        if key_path.exists():
            logger.warning(f"Wallet keypair path is not a file: {key_path}")
        else:
            logger.warning(f"Wallet keypair file not found: {key_path}")

    return None

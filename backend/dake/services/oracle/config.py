"""Configuration for the decryption oracle client."""

from pydantic import BaseModel, Field


class OracleConfig(BaseModel):
    """Configuration for the decryption oracle client."""

    base_url: str = "http://localhost:8787"
    encrypt_path: str = "/encrypt"
    decrypt_path: str = "/decrypt"

    # Per-request ceiling and transport retries (encrypt)
    request_timeout_seconds: float = 30.0
    max_retries: int = 3

    # Slept BEFORE each decrypt attempt; the oracle lags ledger state
    decrypt_backoff_seconds: list[float] = Field(default_factory=lambda: [3.0, 5.0, 8.0, 12.0])

    # Check Ed25519 attestations locally before they are used in a claim
    verify_attestations: bool = True

"""Async client for the threshold-decryption oracle with retry logic and error handling."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from dake.exceptions import DecryptionUnavailable
from dake.wallet import Wallet

from .attestation import verify_signature_instructions
from .auth import OracleRequestAuth
from .config import OracleConfig
from .exceptions import (
    OracleAPIError,
    OracleAuthError,
    OracleBadRequestError,
    OracleNotReadyError,
    OracleRateLimitError,
    OracleServerError,
    OracleTimeoutError,
)
from .models import DecryptionResult, SignatureInstruction, parse_plaintext_int

logger = logging.getLogger(__name__)

# Failures that may clear once the oracle catches up with the ledger
RETRYABLE_DECRYPT_ERRORS = (
    OracleNotReadyError,
    OracleRateLimitError,
    OracleServerError,
    OracleTimeoutError,
)


class OracleClient:
    """Encrypts side values and requests attested decryptions of handles."""

    def __init__(
        self,
        config: OracleConfig | None = None,
        wallet: Wallet | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or OracleConfig()
        self.auth = OracleRequestAuth(wallet) if wallet else None
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info(
            f"Initialized OracleClient (base_url={self.config.base_url}, "
            f"auth={'enabled' if self.auth else 'disabled'})"
        )

    async def __aenter__(self) -> OracleClient:
        """Context manager entry - create HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout_seconds,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - cleanup."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed OracleClient")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client, raising if not in context."""
        if self._client is None:
            raise RuntimeError("OracleClient must be used as async context manager")
        return self._client

    def _require_auth(self) -> OracleRequestAuth:
        if self.auth is None:
            raise OracleAuthError("Decryption requires a wallet to sign the request")
        return self.auth

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Single POST with status codes mapped onto oracle exceptions."""
        try:
            response = await self.client.post(path, json=payload)
        except httpx.TimeoutException as e:
            raise OracleTimeoutError(f"Oracle request to {path} timed out") from e
        except httpx.RequestError as e:
            raise OracleServerError(f"Network error calling oracle: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise OracleAuthError("Oracle rejected request authentication", status_code=status)
        if status == 400:
            raise OracleBadRequestError(f"Invalid request: {response.text}", status_code=400)
        if status in (404, 409, 425):
            raise OracleNotReadyError("Value not available yet", status_code=status)
        if status == 429:
            raise OracleRateLimitError("Rate limited", status_code=429)
        if status >= 500:
            raise OracleServerError(f"Server error {status}", status_code=status)
        if status >= 400:
            raise OracleAPIError(f"Unexpected status {status}", status_code=status)

        try:
            return response.json()
        except ValueError as e:
            raise OracleServerError(
                f"Oracle returned a non-JSON body from {path}", status_code=status
            ) from e

    async def encrypt(self, value: int) -> str:
        """Encrypt an integer; returns the ciphertext as a hex string."""
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                data = await self._post(self.config.encrypt_path, {"value": str(value)})
                ciphertext = data.get("ciphertext")
                if not isinstance(ciphertext, str) or not ciphertext:
                    raise OracleAPIError("Oracle returned no ciphertext")
                return ciphertext

            except (OracleRateLimitError, OracleServerError, OracleTimeoutError) as e:
                last_error = e
                wait_time = 2 ** retry_count
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Encrypt failed ({e}), retrying in {wait_time}s...")
                    await asyncio.sleep(wait_time)

        raise OracleAPIError(f"Encrypt failed after {retry_count} attempts: {last_error}")

    async def decrypt(self, handles: list[str]) -> dict[str, Any]:
        """One authenticated decrypt request for decimal handle strings."""
        auth = self._require_auth()
        payload: dict[str, Any] = {"handles": handles, **auth.get_auth_payload(handles)}
        return await self._post(self.config.decrypt_path, payload)

    def _parse_decryption(
        self, handle: int, data: dict[str, Any], attempt: int
    ) -> DecryptionResult:
        handle_str = str(handle)
        plaintexts = data.get("plaintexts") or []
        echoed = [str(h) for h in data.get("handles") or []]

        if echoed:
            if handle_str not in echoed:
                raise OracleNotReadyError(f"Oracle response does not include handle {handle_str}")
            index = echoed.index(handle_str)
        else:
            index = 0

        if index >= len(plaintexts) or plaintexts[index] is None:
            raise OracleNotReadyError(f"No plaintext for handle {handle_str} yet")

        plaintext = str(plaintexts[index])
        try:
            parse_plaintext_int(plaintext)
        except ValueError as e:
            raise OracleServerError(f"Malformed plaintext for handle {handle_str}: {e}") from e

        raw_instructions = data.get("signature_instructions")
        if raw_instructions is None:
            raw_instructions = data.get("ed25519_instructions", [])

        return DecryptionResult(
            handle=handle,
            plaintext=plaintext,
            signature_instructions=[SignatureInstruction.from_api(ix) for ix in raw_instructions],
            attempt=attempt,
        )

    async def decrypt_handle(self, handle: int) -> DecryptionResult:
        """Request an attested decryption, waiting out oracle propagation delay.

        Each attempt sleeps its backoff interval before calling the oracle.
        Raises DecryptionUnavailable once every attempt has failed.
        """
        self._require_auth()
        handle_str = str(handle)
        backoff = self.config.decrypt_backoff_seconds
        last_error: Exception | None = None

        for attempt, delay in enumerate(backoff, 1):
            logger.info(
                f"Waiting {delay}s before decrypt attempt {attempt}/{len(backoff)} "
                f"for handle {handle_str}"
            )
            await asyncio.sleep(delay)

            try:
                data = await asyncio.wait_for(
                    self.decrypt([handle_str]),
                    timeout=self.config.request_timeout_seconds,
                )
                result = self._parse_decryption(handle, data, attempt)
            except asyncio.TimeoutError:
                last_error = OracleTimeoutError("Decrypt request exceeded ceiling")
                logger.warning(f"Decrypt attempt {attempt} timed out")
                continue
            except RETRYABLE_DECRYPT_ERRORS as e:
                last_error = e
                logger.warning(f"Decrypt attempt {attempt} failed: {e}")
                continue

            if self.config.verify_attestations:
                verified = verify_signature_instructions(result.signature_instructions)
                logger.debug(f"Verified {verified} attestation signature(s)")

            logger.info(f"Decrypted handle {handle_str} on attempt {attempt}")
            return result

        raise DecryptionUnavailable(
            f"Oracle did not decrypt handle {handle_str} after {len(backoff)} attempts: "
            f"{last_error}",
            attempts=len(backoff),
        )


def create_oracle_client(
    wallet: Wallet | None = None,
    base_url: str | None = None,
) -> OracleClient:
    config = OracleConfig(base_url=base_url) if base_url else OracleConfig()
    return OracleClient(config, wallet)

from __future__ import annotations

import asyncio
import base64
import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from .config import LedgerConfig
from .exceptions import (
    LedgerAPIError,
    LedgerRateLimitError,
    LedgerRPCError,
    LedgerTimeoutError,
    LedgerTransactionError,
)
from .models import ProgramAccount, SignatureStatus, SimulationResult

if TYPE_CHECKING:
    from dake.wallet import Wallet

logger = logging.getLogger(__name__)


class LedgerClient:
    def __init__(
        self,
        config: LedgerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or LedgerConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request_id = 0

        logger.info(f"Initialized LedgerClient (rpc={self.config.rpc_url})")

    async def __aenter__(self) -> LedgerClient:
        limits = httpx.Limits(
            max_connections=self.config.max_connections,
            max_keepalive_connections=self.config.max_keepalive_connections,
        )
        self._client = httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            limits=limits,
            transport=self._transport,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type | None,
        exc_val: Exception | None,
        exc_tb: Any,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Closed LedgerClient")

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("LedgerClient must be used as async context manager")
        return self._client

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.config.max_retries:
            try:
                response = await self.client.post(self.config.rpc_url, json=payload)

                if response.status_code == 429:
                    wait_time = 2 ** retry_count
                    logger.warning(f"Rate limited on {method}, waiting {wait_time}s...")
                    last_error = LedgerRateLimitError("Rate limited", status_code=429)
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue
                elif response.status_code >= 500:
                    wait_time = 2 ** retry_count
                    logger.warning(
                        f"Server error {response.status_code} on {method}, "
                        f"retrying in {wait_time}s..."
                    )
                    last_error = LedgerAPIError(
                        f"Server error {response.status_code}",
                        status_code=response.status_code,
                    )
                    await asyncio.sleep(wait_time)
                    retry_count += 1
                    continue

                response.raise_for_status()
                try:
                    body = response.json()
                except ValueError as e:
                    raise LedgerAPIError(
                        f"Invalid JSON from ledger on {method}",
                        status_code=response.status_code,
                    ) from e

                error = body.get("error")
                if error:
                    raise LedgerRPCError(
                        error.get("code", -1),
                        error.get("message", "unknown error"),
                        error.get("data"),
                    )
                return body.get("result")

            except httpx.TimeoutException as e:
                last_error = e
                retry_count += 1
                if retry_count < self.config.max_retries:
                    logger.warning(f"Timeout on {method}, retrying ({retry_count})...")
                    await asyncio.sleep(1)

            except httpx.HTTPStatusError as e:
                raise LedgerAPIError(
                    f"HTTP {e.response.status_code} from ledger on {method}",
                    status_code=e.response.status_code,
                ) from e

            except httpx.RequestError as e:
                last_error = e
                logger.error(f"Network error on {method}: {e}")
                break

        raise LedgerAPIError(
            f"{method} failed after {retry_count} retries: {last_error}"
        )

    async def get_account_info(self, address: Pubkey | str) -> bytes | None:
        result = await self._request(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.config.commitment}],
        )
        value = (result or {}).get("value")
        if value is None:
            return None
        data = value.get("data")
        return base64.b64decode(data[0]) if isinstance(data, list) else None

    async def get_program_accounts(
        self,
        program_id: Pubkey | str,
        filters: list[dict[str, Any]] | None = None,
    ) -> list[ProgramAccount]:
        config: dict[str, Any] = {
            "encoding": "base64",
            "commitment": self.config.commitment,
        }
        if filters:
            config["filters"] = filters

        result = await self._request("getProgramAccounts", [str(program_id), config])
        return [ProgramAccount.from_api(item) for item in result or []]

    async def get_latest_blockhash(self) -> Hash:
        result = await self._request(
            "getLatestBlockhash", [{"commitment": self.config.commitment}]
        )
        return Hash.from_string(result["value"]["blockhash"])

    async def simulate_transaction(
        self,
        instructions: Sequence[Instruction],
        payer: Pubkey,
        account_addresses: Sequence[Pubkey | str] = (),
    ) -> SimulationResult:
        """Simulate unsigned instructions; optionally return post-simulation account data."""
        message = Message.new_with_blockhash(list(instructions), payer, Hash.default())
        transaction = Transaction.new_unsigned(message)

        config: dict[str, Any] = {
            "encoding": "base64",
            "sigVerify": False,
            "replaceRecentBlockhash": True,
            "commitment": self.config.commitment,
        }
        if account_addresses:
            config["accounts"] = {
                "encoding": "base64",
                "addresses": [str(a) for a in account_addresses],
            }

        result = await self._request(
            "simulateTransaction",
            [base64.b64encode(bytes(transaction)).decode("ascii"), config],
        )
        return SimulationResult.from_api(result["value"])

    async def send_transaction(
        self, instructions: Sequence[Instruction], wallet: Wallet
    ) -> str:
        blockhash = await self.get_latest_blockhash()
        message = Message.new_with_blockhash(list(instructions), wallet.pubkey, blockhash)
        transaction = wallet.sign_transaction(message, blockhash)

        signature = await self._request(
            "sendTransaction",
            [
                base64.b64encode(bytes(transaction)).decode("ascii"),
                {"encoding": "base64", "preflightCommitment": self.config.commitment},
            ],
        )
        logger.info(f"Submitted transaction {signature}")
        return signature

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        result = await self._request(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": False}],
        )
        statuses = (result or {}).get("value") or [None]
        status = statuses[0]
        return SignatureStatus.from_api(status) if status else None

    async def confirm_transaction(self, signature: str) -> SignatureStatus:
        deadline = time.monotonic() + self.config.confirm_timeout_seconds

        while True:
            status = await self.get_signature_status(signature)
            if status is not None:
                if status.err is not None:
                    raise LedgerTransactionError(signature, status.err)
                if status.reached(self.config.commitment):
                    logger.info(
                        f"Confirmed {signature} ({status.confirmation_status}, slot {status.slot})"
                    )
                    return status

            if time.monotonic() >= deadline:
                raise LedgerTimeoutError(
                    f"Transaction {signature} not confirmed within "
                    f"{self.config.confirm_timeout_seconds}s",
                    signature=signature,
                )
            await asyncio.sleep(self.config.confirm_poll_interval_seconds)

    async def send_and_confirm(
        self, instructions: Sequence[Instruction], wallet: Wallet
    ) -> str:
        signature = await self.send_transaction(instructions, wallet)
        await self.confirm_transaction(signature)
        return signature


def create_ledger_client(rpc_url: str | None = None) -> LedgerClient:
    config = LedgerConfig(rpc_url=rpc_url) if rpc_url else LedgerConfig()
    return LedgerClient(config)

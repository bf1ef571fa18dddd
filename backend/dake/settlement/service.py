"""Settlement orchestration: discovery, attested decryption and claim."""

from __future__ import annotations

import asyncio
import logging

from dake.exceptions import (
    AlreadyClaimed,
    HandleUnavailable,
    MarketNotResolved,
    NotPositionOwner,
    NotWinner,
    StaleAttestation,
    WalletRequired,
)
from dake.portfolio import PortfolioReader
from dake.program import Market, Position, ProgramConfig, ProgramErrorCode
from dake.services.ledger import LedgerAPIError, LedgerClient
from dake.services.oracle import DecryptionResult, OracleClient
from dake.wallet import Wallet

from .claim import ClaimTransactionBuilder
from .discovery import HandleDiscovery
from .errors import map_ledger_error
from .models import ClaimReceipt, SettlementOutcome

logger = logging.getLogger(__name__)


class SettlementService:
    """Runs the settlement flow for positions owned by one wallet.

    Owns the per-position decryption cache and the per-position lock. The
    cache is written only after a fully successful decryption and is what the
    claim step submits, so the attestation and the claimed bytes always come
    from the same oracle response.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        oracle: OracleClient,
        wallet: Wallet | None,
        program: ProgramConfig | None = None,
    ):
        self.ledger = ledger
        self.oracle = oracle
        self.wallet = wallet
        self.program = program or ProgramConfig()
        self.reader = PortfolioReader(ledger, self.program)
        self.builder = ClaimTransactionBuilder(self.program)

        self._results: dict[str, DecryptionResult] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, address: str) -> asyncio.Lock:
        lock = self._locks.get(address)
        if lock is None:
            lock = self._locks[address] = asyncio.Lock()
        return lock

    def _require_wallet(self) -> Wallet:
        if self.wallet is None:
            raise WalletRequired("A wallet is required to settle positions")
        return self.wallet

    def cached_result(self, address: str) -> DecryptionResult | None:
        return self._results.get(str(address))

    def forget(self, address: str) -> None:
        self._results.pop(str(address), None)

    async def _load(self, address: str) -> tuple[Position, Market]:
        wallet = self._require_wallet()
        position = await self.reader.get_position(address)
        if position.owner != wallet.address:
            raise NotPositionOwner(
                f"Position {address} is owned by {position.owner}, not {wallet.address}"
            )

        market = await self.reader.get_market(position.market)
        if not market.is_resolved:
            raise MarketNotResolved(
                f"Market {market.market_id} is {market.status.label.lower()}"
            )
        return position, market

    def _usable_cache(self, position: Position) -> DecryptionResult | None:
        cached = self._results.get(position.address)
        if cached is None:
            return None
        if position.is_checked and cached.handle != position.is_winner_handle:
            logger.info(f"Dropping cached decryption for {position.address}: handle changed")
            self.forget(position.address)
            return None
        return cached

    async def _decrypt(self, position: Position) -> DecryptionResult:
        discovery = HandleDiscovery(self.ledger, self._require_wallet(), self.program, self.reader)
        handle = await discovery.discover_handle(position)
        if handle is None:
            raise HandleUnavailable(f"No is-winner handle available for {position.address} yet")

        result = await self.oracle.decrypt_handle(handle)
        self._results[position.address] = result
        return result

    @staticmethod
    def _outcome(position: Position, market: Market, result: DecryptionResult) -> SettlementOutcome:
        is_winner = result.is_winner
        return SettlementOutcome(
            position=position.address,
            handle=result.handle,
            is_winner=is_winner,
            winning_side=market.outcome,
            expected_payout=position.locked_payout if is_winner else 0,
            attempt=result.attempt,
        )

    async def check_winner(self, address: str, refresh: bool = False) -> SettlementOutcome:
        """Discover and decrypt the position's is-winner value."""
        address = str(address)
        async with self._lock(address):
            position, market = await self._load(address)

            result = None if refresh else self._usable_cache(position)
            if result is None:
                result = await self._decrypt(position)
            else:
                logger.info(f"Using cached decryption for {address}")

            outcome = self._outcome(position, market, result)
            logger.info(
                f"Position {address}: {'winner' if outcome.is_winner else 'not a winner'} "
                f"(market outcome {market.status.label})"
            )
            return outcome

    async def claim(self, address: str, refresh: bool = False) -> ClaimReceipt:
        """Claim winnings with the cached decryption, decrypting first if needed."""
        address = str(address)
        async with self._lock(address):
            position, _ = await self._load(address)
            if position.claimed:
                self.forget(address)
                raise AlreadyClaimed(
                    f"Position {address} has already been claimed",
                    code=int(ProgramErrorCode.ALREADY_CLAIMED),
                    error_name=ProgramErrorCode.ALREADY_CLAIMED.name,
                )

            result = None if refresh else self._usable_cache(position)
            if result is None:
                result = await self._decrypt(position)
                position = await self.reader.get_position(address)

            if not result.is_winner:
                raise NotWinner(f"Position {address} did not win; nothing to claim")

            try:
                transaction = self.builder.build(position, result)
            except StaleAttestation:
                self.forget(address)
                raise

            wallet = self._require_wallet()
            try:
                signature = await self.ledger.send_and_confirm(transaction.instructions, wallet)
            except LedgerAPIError as e:
                error = map_ledger_error(
                    e,
                    signature_instruction_count=transaction.signature_instruction_count,
                    oracle_program_id=self.program.oracle_program_id,
                )
                if isinstance(error, (StaleAttestation, AlreadyClaimed)):
                    self.forget(address)
                logger.error(f"Claim for {address} failed: {error}")
                raise error from e

            self.forget(address)
            logger.info(f"Claimed {position.locked_payout} lamports for {address} ({signature})")
            return ClaimReceipt(
                position=address,
                signature=signature,
                payout=position.locked_payout,
            )

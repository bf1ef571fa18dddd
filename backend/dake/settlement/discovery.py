"""Two-phase is-winner handle discovery.

The oracle only lets a wallet read a handle after an allowance addressed to
that handle exists, but the handle is produced by check_winner itself. So:

1. simulate check_winner without remaining accounts and read the handle from
   the simulated position account;
2. derive the allowance from (handle, owner) and submit check_winner for real
   with [allowance, owner] appended.

A position that already carries a handle is only re-read.
"""

import logging

from dake.exceptions import HandleUnavailable, SimulationFailed
from dake.portfolio import PortfolioReader
from dake.program import Position, ProgramConfig, allowance_address
from dake.program.instructions import check_winner, grant_decrypt_access
from dake.program.layout import LayoutError, read_is_winner_handle
from dake.services.ledger import LedgerAPIError, LedgerClient, LedgerRPCError
from dake.wallet import Wallet

from .errors import map_ledger_error

logger = logging.getLogger(__name__)


class HandleDiscovery:
    def __init__(
        self,
        ledger: LedgerClient,
        wallet: Wallet,
        program: ProgramConfig | None = None,
        reader: PortfolioReader | None = None,
    ):
        self.ledger = ledger
        self.wallet = wallet
        self.program = program or ProgramConfig()
        self.reader = reader or PortfolioReader(ledger, self.program)

    async def discover_handle(self, position: Position) -> int | None:
        """Return the committed is-winner handle, or None if not yet available."""
        current = await self.reader.get_position(position.address)
        if current.is_checked:
            logger.info(f"Position {position.address} already checked; reusing handle")
            return current.is_winner_handle

        handle = await self.simulate_check(current)
        if handle == 0:
            logger.info(f"Simulation produced no handle for {position.address}")
            return None

        return await self.commit_check(current, handle)

    async def simulate_check(self, position: Position) -> int:
        instruction = check_winner(
            self.program,
            checker=self.wallet.pubkey,
            market=position.market_pubkey,
            position=position.pubkey,
        )
        try:
            result = await self.ledger.simulate_transaction(
                [instruction],
                payer=self.wallet.pubkey,
                account_addresses=[position.pubkey],
            )
        except LedgerRPCError as e:
            raise SimulationFailed(f"check_winner simulation rejected: {e}", e.err, e.logs) from e

        if not result.succeeded:
            for line in result.logs:
                logger.debug(f"simulation log: {line}")
            raise SimulationFailed(
                f"check_winner simulation failed: {result.err}", result.err, result.logs
            )

        if not result.accounts or result.accounts[0] is None:
            raise SimulationFailed("Simulation returned no position state", logs=result.logs)

        try:
            return read_is_winner_handle(result.accounts[0])
        except LayoutError as e:
            raise SimulationFailed(f"Could not decode simulated position: {e}") from e

    async def commit_check(self, position: Position, handle: int) -> int:
        owner = position.owner_pubkey
        allowance, _ = allowance_address(handle, owner, self.program.oracle_program_pubkey)
        instruction = check_winner(
            self.program,
            checker=self.wallet.pubkey,
            market=position.market_pubkey,
            position=position.pubkey,
            allowance=allowance,
            allowed=owner,
        )

        logger.info(f"Committing check_winner for {position.address} (allowance {allowance})")
        try:
            await self.ledger.send_and_confirm([instruction], self.wallet)
        except LedgerAPIError as e:
            raise map_ledger_error(e) from e

        committed = await self.reader.get_position(position.address)
        if not committed.is_checked:
            raise HandleUnavailable(f"Position {position.address} has no handle after check")
        if committed.is_winner_handle != handle:
            logger.warning(
                f"Committed handle differs from simulated one for {position.address}"
            )
        return committed.is_winner_handle

    async def grant_access(self, position: Position) -> str:
        """Re-grant decrypt access to the position's stored handle."""
        current = await self.reader.get_position(position.address)
        if not current.is_checked:
            raise HandleUnavailable(f"Position {position.address} has not been checked yet")

        owner = current.owner_pubkey
        allowance, _ = allowance_address(
            current.is_winner_handle, owner, self.program.oracle_program_pubkey
        )
        instruction = grant_decrypt_access(
            self.program, owner=owner, position=current.pubkey, allowance=allowance
        )
        try:
            return await self.ledger.send_and_confirm([instruction], self.wallet)
        except LedgerAPIError as e:
            raise map_ledger_error(e) from e

"""Read-side views of markets and positions owned by the ledger."""

import base64
import logging

from solders.pubkey import Pubkey

from dake.exceptions import AccountNotFound
from dake.program import Market, Position, ProgramConfig, position_address
from dake.program.layout import (
    MARKET_DISCRIMINATOR,
    POSITION_DISCRIMINATOR,
    POSITION_OWNER_OFFSET,
    LayoutError,
)
from dake.services.ledger import LedgerClient

logger = logging.getLogger(__name__)


def _discriminator_filter(discriminator: bytes) -> dict:
    return {
        "memcmp": {
            "offset": 0,
            "bytes": base64.b64encode(discriminator).decode("ascii"),
            "encoding": "base64",
        }
    }


class PortfolioReader:
    def __init__(self, ledger: LedgerClient, program: ProgramConfig | None = None):
        self.ledger = ledger
        self.program = program or ProgramConfig()

    async def get_market(self, address: Pubkey | str) -> Market:
        data = await self.ledger.get_account_info(address)
        if data is None:
            raise AccountNotFound(f"Market account not found: {address}", error_name="AccountNotFound")
        return Market.from_account_data(address, data)

    async def get_position(self, address: Pubkey | str) -> Position:
        data = await self.ledger.get_account_info(address)
        if data is None:
            raise AccountNotFound(
                f"Position account not found: {address}", error_name="AccountNotFound"
            )
        return Position.from_account_data(address, data)

    async def find_position(self, market: Pubkey, owner: Pubkey) -> Position | None:
        address, _ = position_address(market, owner, self.program.program_pubkey)
        data = await self.ledger.get_account_info(address)
        if data is None:
            return None
        return Position.from_account_data(address, data)

    async def list_markets(self) -> list[Market]:
        accounts = await self.ledger.get_program_accounts(
            self.program.program_pubkey,
            filters=[_discriminator_filter(MARKET_DISCRIMINATOR)],
        )

        markets = []
        for account in accounts:
            try:
                markets.append(Market.from_account_data(account.address, account.data))
            except LayoutError as e:
                logger.warning(f"Skipping undecodable market {account.address}: {e}")

        # Newest first
        markets.sort(key=lambda m: m.market_id, reverse=True)
        return markets

    async def list_positions(self, owner: Pubkey) -> list[tuple[Position, Market]]:
        """Every position held by `owner`, each paired with its market."""
        accounts = await self.ledger.get_program_accounts(
            self.program.program_pubkey,
            filters=[
                _discriminator_filter(POSITION_DISCRIMINATOR),
                {"memcmp": {"offset": POSITION_OWNER_OFFSET, "bytes": str(owner)}},
            ],
        )

        results: list[tuple[Position, Market]] = []
        for account in accounts:
            try:
                position = Position.from_account_data(account.address, account.data)
            except LayoutError as e:
                logger.warning(f"Skipping undecodable position {account.address}: {e}")
                continue
            try:
                market = await self.get_market(position.market)
            except (AccountNotFound, LayoutError) as e:
                logger.error(f"Error fetching market for position {account.address}: {e}")
                continue
            results.append((position, market))

        return results

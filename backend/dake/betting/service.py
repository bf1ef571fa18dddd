"""Bet placement: validate, preview, encrypt the side, submit place_bet."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from dake.exceptions import (
    AccountNotFound,
    InvalidSide,
    InvalidStake,
    MarketNotOpen,
    PositionExists,
    WalletRequired,
)
from dake.portfolio import PortfolioReader
from dake.pricing import Side, calculate_payout, locked_payout_lamports
from dake.program import LAMPORTS_PER_SOL, Market, ProgramConfig, position_address
from dake.program.instructions import place_bet
from dake.services.ledger import LedgerAPIError, LedgerClient
from dake.services.oracle import OracleClient
from dake.settlement.encoder import PositionEncoder
from dake.settlement.errors import map_ledger_error
from dake.wallet import Wallet

from .models import BetPreview, BetReceipt

logger = logging.getLogger(__name__)


def sol_to_lamports(amount: Decimal | str | int | float) -> int:
    """Convert a SOL amount to whole lamports; rejects non-positive or fractional lamports."""
    try:
        value = Decimal(str(amount)) * LAMPORTS_PER_SOL
    except InvalidOperation as e:
        raise InvalidStake(f"Stake is not a number: {amount!r}") from e

    if not value.is_finite() or value <= 0:
        raise InvalidStake(f"Stake must be greater than zero, got {amount}")
    if value != value.to_integral_value():
        raise InvalidStake(f"Stake {amount} is finer than one lamport")
    return int(value)


def parse_side(side: Side | str | int) -> Side:
    if isinstance(side, Side):
        return side
    if isinstance(side, int):
        try:
            return Side.from_bit(side)
        except ValueError as e:
            raise InvalidSide(str(e)) from e
    try:
        return Side(str(side).strip().lower())
    except ValueError as e:
        raise InvalidSide(f"Side must be YES or NO, got {side!r}") from e


class BetService:
    def __init__(
        self,
        ledger: LedgerClient,
        oracle: OracleClient,
        wallet: Wallet | None,
        program: ProgramConfig | None = None,
    ):
        self.ledger = ledger
        self.wallet = wallet
        self.program = program or ProgramConfig()
        self.reader = PortfolioReader(ledger, self.program)
        self.encoder = PositionEncoder(oracle)

    def _quote(self, market: Market, side: Side, lamports: int) -> BetPreview:
        quote = calculate_payout(market.total_yes_amount, market.total_no_amount, side, lamports)
        return BetPreview(
            market=market.address,
            side=side,
            amount=lamports,
            quote=quote,
            estimated_locked_payout=locked_payout_lamports(
                market.total_yes_amount, market.total_no_amount, side, lamports
            ),
        )

    async def preview(
        self, market_address: str, side: Side | str | int, amount: Decimal | str | float
    ) -> BetPreview:
        """Payout preview against current pools; never authoritative."""
        side = parse_side(side)
        lamports = sol_to_lamports(amount)
        market = await self.reader.get_market(market_address)
        return self._quote(market, side, lamports)

    async def place_bet(
        self, market_address: str, side: Side | str | int, amount: Decimal | str | float
    ) -> BetReceipt:
        if self.wallet is None:
            raise WalletRequired("A wallet is required to place bets")
        side = parse_side(side)
        lamports = sol_to_lamports(amount)

        market = await self.reader.get_market(market_address)
        if not market.is_open:
            raise MarketNotOpen(f"Market {market.market_id} is {market.status.label.lower()}")

        existing = await self.reader.find_position(market.pubkey, self.wallet.pubkey)
        if existing is not None:
            raise PositionExists(
                f"Wallet already has a position in market {market.market_id}: {existing.address}"
            )

        preview = self._quote(market, side, lamports)
        logger.info(
            f"Betting {lamports} lamports on {side.value.upper()} in market {market.market_id} "
            f"(estimated payout {preview.estimated_locked_payout})"
        )

        encrypted_side = await self.encoder.encode(side.bit)

        instruction = place_bet(
            self.program,
            bettor=self.wallet.pubkey,
            market=market.pubkey,
            encrypted_side=encrypted_side,
            amount=lamports,
            side_bit=side.bit,
        )
        try:
            signature = await self.ledger.send_and_confirm([instruction], self.wallet)
        except LedgerAPIError as e:
            raise map_ledger_error(e) from e

        address, _ = position_address(market.pubkey, self.wallet.pubkey, self.program.program_pubkey)
        try:
            position = await self.reader.get_position(address)
        except AccountNotFound:
            logger.error(f"Position {address} missing after confirmed bet {signature}")
            raise

        if position.locked_payout != preview.estimated_locked_payout:
            logger.info(
                f"Locked payout {position.locked_payout} differs from estimate "
                f"{preview.estimated_locked_payout} (pools moved)"
            )

        return BetReceipt(
            market=market.address,
            position=position.address,
            side=side,
            amount=lamports,
            signature=signature,
            locked_payout=position.locked_payout,
            estimated_locked_payout=preview.estimated_locked_payout,
        )

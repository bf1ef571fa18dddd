from __future__ import annotations

from datetime import datetime, timezone
from enum import IntEnum

from pydantic import BaseModel
from solders.pubkey import Pubkey

from dake.pricing import OddsSnapshot, Side, calculate_odds

from .layout import LayoutError, decode_market_fields, decode_position_fields

LAMPORTS_PER_SOL = 1_000_000_000


class MarketStatus(IntEnum):
    OPEN = 0
    CLOSED = 1
    RESOLVED_YES = 2
    RESOLVED_NO = 3

    @property
    def label(self) -> str:
        return {
            MarketStatus.OPEN: "Open",
            MarketStatus.CLOSED: "Closed",
            MarketStatus.RESOLVED_YES: "Resolved: YES",
            MarketStatus.RESOLVED_NO: "Resolved: NO",
        }[self]


class Market(BaseModel):
    address: str
    authority: str
    market_id: int
    question: str = ""
    resolution_time: int = 0
    status: MarketStatus = MarketStatus.OPEN
    total_yes_amount: int = 0
    total_no_amount: int = 0
    participant_count: int = 0
    bump: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == MarketStatus.OPEN

    @property
    def is_resolved(self) -> bool:
        return self.status in (MarketStatus.RESOLVED_YES, MarketStatus.RESOLVED_NO)

    @property
    def total_pool(self) -> int:
        return self.total_yes_amount + self.total_no_amount

    @property
    def outcome(self) -> Side | None:
        if self.status == MarketStatus.RESOLVED_YES:
            return Side.YES
        if self.status == MarketStatus.RESOLVED_NO:
            return Side.NO
        return None

    @property
    def resolution_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.resolution_time, tz=timezone.utc)

    @property
    def pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.address)

    def odds(self) -> OddsSnapshot:
        return calculate_odds(self.total_yes_amount, self.total_no_amount)

    @classmethod
    def from_account_data(cls, address: str | Pubkey, data: bytes) -> Market:
        fields = decode_market_fields(data)
        try:
            status = MarketStatus(fields["status"])
        except ValueError as e:
            raise LayoutError(f"Unknown market status {fields['status']}") from e
        return cls(
            address=str(address),
            authority=str(Pubkey.from_bytes(fields["authority"])),
            market_id=fields["market_id"],
            question=fields["question"],
            resolution_time=fields["resolution_time"],
            status=status,
            total_yes_amount=fields["total_yes_amount"],
            total_no_amount=fields["total_no_amount"],
            participant_count=fields["participant_count"],
            bump=fields["bump"],
        )


class Position(BaseModel):
    address: str
    market: str
    owner: str
    amount: int = 0
    locked_payout: int = 0
    encrypted_side_handle: int = 0
    is_winner_handle: int = 0
    claimed: bool = False
    bump: int = 0

    @property
    def is_checked(self) -> bool:
        return self.is_winner_handle != 0

    @property
    def pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.address)

    @property
    def market_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.market)

    @property
    def owner_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.owner)

    @property
    def amount_sol(self) -> float:
        return self.amount / LAMPORTS_PER_SOL

    @property
    def locked_payout_sol(self) -> float:
        return self.locked_payout / LAMPORTS_PER_SOL

    @classmethod
    def from_account_data(cls, address: str | Pubkey, data: bytes) -> Position:
        fields = decode_position_fields(data)
        return cls(
            address=str(address),
            market=str(Pubkey.from_bytes(fields["market"])),
            owner=str(Pubkey.from_bytes(fields["owner"])),
            amount=fields["amount"],
            locked_payout=fields["locked_payout"],
            encrypted_side_handle=fields["encrypted_side_handle"],
            is_winner_handle=fields["is_winner_handle"],
            claimed=fields["claimed"],
            bump=fields["bump"],
        )

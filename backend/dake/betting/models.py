from __future__ import annotations

from pydantic import BaseModel

from dake.pricing import PayoutQuote, Side


class BetPreview(BaseModel):
    market: str
    side: Side
    amount: int
    quote: PayoutQuote
    estimated_locked_payout: int


class BetReceipt(BaseModel):
    market: str
    position: str
    side: Side
    amount: int
    signature: str
    locked_payout: int
    estimated_locked_payout: int

    @property
    def estimate_matched(self) -> bool:
        return self.locked_payout == self.estimated_locked_payout

from __future__ import annotations

from pydantic import BaseModel

from dake.pricing import Side


class SettlementOutcome(BaseModel):
    """Result of checking a position against its resolved market."""

    position: str
    handle: int
    is_winner: bool
    winning_side: Side | None = None
    expected_payout: int = 0
    attempt: int = 1

    @property
    def bet_side(self) -> Side | None:
        """The side the position took, when it can be inferred from the outcome."""
        if self.winning_side is None:
            return None
        return self.winning_side if self.is_winner else self.winning_side.opposite


class ClaimReceipt(BaseModel):
    position: str
    signature: str | None = None
    payout: int = 0
    already_claimed: bool = False

from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, Field

CONFIRMED_LEVELS = {
    "processed": ("processed", "confirmed", "finalized"),
    "confirmed": ("confirmed", "finalized"),
    "finalized": ("finalized",),
}


def decode_account_data(account: dict[str, Any] | None) -> bytes | None:
    """Decode the `data` field of a base64-encoded RPC account object."""
    if not account:
        return None
    data = account.get("data")
    if isinstance(data, list) and data:
        return base64.b64decode(data[0])
    if isinstance(data, str):
        return base64.b64decode(data)
    return None


class ProgramAccount(BaseModel):
    address: str
    data: bytes

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> ProgramAccount:
        return cls(
            address=item.get("pubkey", ""),
            data=decode_account_data(item.get("account")) or b"",
        )


class SimulationResult(BaseModel):
    err: Any = None
    logs: list[str] = Field(default_factory=list)
    accounts: list[bytes | None] = Field(default_factory=list)
    units_consumed: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.err is None

    @classmethod
    def from_api(cls, value: dict[str, Any]) -> SimulationResult:
        return cls(
            err=value.get("err"),
            logs=value.get("logs") or [],
            accounts=[decode_account_data(a) for a in value.get("accounts") or []],
            units_consumed=value.get("unitsConsumed"),
        )


class SignatureStatus(BaseModel):
    slot: int = 0
    confirmations: int | None = None
    err: Any = None
    confirmation_status: str | None = None

    def reached(self, commitment: str) -> bool:
        levels = CONFIRMED_LEVELS.get(commitment, CONFIRMED_LEVELS["confirmed"])
        return self.confirmation_status in levels

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SignatureStatus:
        return cls(
            slot=data.get("slot", 0),
            confirmations=data.get("confirmations"),
            err=data.get("err"),
            confirmation_status=data.get("confirmationStatus"),
        )

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey


MAX_PLAINTEXT = (1 << 128) - 1


def parse_plaintext_int(plaintext: str | int) -> int:
    """Parse an oracle plaintext ("1", "0x01", "true", 7) into a u128.

    Raises ValueError for anything that is not an unsigned integer below 2**128.
    """
    if isinstance(plaintext, bool):
        return int(plaintext)
    if isinstance(plaintext, int):
        value = plaintext
    else:
        text = plaintext.strip().lower()
        if text in ("", "false"):
            return 0
        if text == "true":
            return 1
        if text.startswith("0x"):
            value = int(text[2:] or "0", 16)
        else:
            value = int(text, 10)

    if value < 0 or value > MAX_PLAINTEXT:
        raise ValueError(f"Plaintext out of u128 range: {plaintext}")
    return value


def plaintext_is_true(plaintext: str | int | None) -> bool:
    """Interpret a decrypted is-winner value; any zero encoding is False."""
    if plaintext is None:
        return False
    return parse_plaintext_int(plaintext) != 0


class SignatureAccount(BaseModel):
    pubkey: str
    is_signer: bool = False
    is_writable: bool = False


class SignatureInstruction(BaseModel):
    """Signature-verification instruction attesting a (handle, plaintext) pair."""

    program_id: str
    data: bytes
    accounts: list[SignatureAccount] = Field(default_factory=list)

    def to_instruction(self) -> Instruction:
        return Instruction(
            Pubkey.from_string(self.program_id),
            self.data,
            [
                AccountMeta(
                    pubkey=Pubkey.from_string(a.pubkey),
                    is_signer=a.is_signer,
                    is_writable=a.is_writable,
                )
                for a in self.accounts
            ],
        )

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> SignatureInstruction:
        accounts = [
            SignatureAccount(
                pubkey=a.get("pubkey", ""),
                is_signer=a.get("is_signer", a.get("isSigner", False)),
                is_writable=a.get("is_writable", a.get("isWritable", False)),
            )
            for a in data.get("accounts", data.get("keys", []))
        ]
        return cls(
            program_id=data.get("program_id", data.get("programId", "")),
            data=base64.b64decode(data.get("data", "")),
            accounts=accounts,
        )


class DecryptionResult(BaseModel):
    """One oracle response: plaintext plus the attestation proving it.

    The claim must use the plaintext and instructions from the same result.
    """

    handle: int
    plaintext: str
    signature_instructions: list[SignatureInstruction] = Field(default_factory=list)
    attempt: int = 1
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("plaintext")
    @classmethod
    def check_plaintext(cls, v: str) -> str:
        parse_plaintext_int(v)
        return v

    @property
    def is_winner(self) -> bool:
        return plaintext_is_true(self.plaintext)

    def instructions(self) -> list[Instruction]:
        return [ix.to_instruction() for ix in self.signature_instructions]

"""Dake program error codes and ledger error parsing."""

from enum import IntEnum
from typing import Any

ANCHOR_ERROR_OFFSET = 6000


class ProgramErrorCode(IntEnum):
    MARKET_NOT_OPEN = 6000
    MARKET_STILL_OPEN = 6001
    MARKET_NOT_RESOLVED = 6002
    MARKET_ALREADY_RESOLVED = 6003
    INVALID_BET_AMOUNT = 6004
    NOT_OWNER = 6005
    ALREADY_CLAIMED = 6006
    NOT_CHECKED = 6007
    NOT_WINNER = 6008
    UNAUTHORIZED = 6009
    NO_FUNDS = 6010
    INVALID_SIDE = 6011
    RESOLUTION_TIME_NOT_REACHED = 6012
    QUESTION_TOO_LONG = 6013


ERROR_MESSAGES: dict[ProgramErrorCode, str] = {
    ProgramErrorCode.MARKET_NOT_OPEN: "Market is not open for betting",
    ProgramErrorCode.MARKET_STILL_OPEN: "Market is still open",
    ProgramErrorCode.MARKET_NOT_RESOLVED: "Market is not resolved yet",
    ProgramErrorCode.MARKET_ALREADY_RESOLVED: "Market is already resolved",
    ProgramErrorCode.INVALID_BET_AMOUNT: "Bet amount must be greater than zero",
    ProgramErrorCode.NOT_OWNER: "Not the position owner",
    ProgramErrorCode.ALREADY_CLAIMED: "Position already claimed",
    ProgramErrorCode.NOT_CHECKED: "Position not checked yet - call check_winner first",
    ProgramErrorCode.NOT_WINNER: "Not a winner - cannot claim",
    ProgramErrorCode.UNAUTHORIZED: "Unauthorized - not the market authority",
    ProgramErrorCode.NO_FUNDS: "No funds in vault",
    ProgramErrorCode.INVALID_SIDE: "Invalid side - must be 0 (NO) or 1 (YES)",
    ProgramErrorCode.RESOLUTION_TIME_NOT_REACHED: "Resolution time not reached yet",
    ProgramErrorCode.QUESTION_TOO_LONG: "Question too long - max 256 characters",
}


def parse_instruction_error(err: Any) -> tuple[int | None, int | None]:
    """Extract (instruction index, custom error code) from a ledger `err` value.

    Handles {"InstructionError": [1, {"Custom": 6008}]}; anything else yields
    (None, None) or (index, None).
    """
    if not isinstance(err, dict) or "InstructionError" not in err:
        return None, None

    detail = err["InstructionError"]
    if not isinstance(detail, list) or len(detail) != 2:
        return None, None

    index, reason = detail
    if isinstance(reason, dict) and "Custom" in reason:
        return index, int(reason["Custom"])
    return index, None


def program_error(code: int | None) -> ProgramErrorCode | None:
    if code is None:
        return None
    try:
        return ProgramErrorCode(code)
    except ValueError:
        return None


def describe_error(err: Any) -> str:
    _, code = parse_instruction_error(err)
    known = program_error(code)
    if known is not None:
        return f"{known.name}: {ERROR_MESSAGES[known]}"
    return str(err)

from .accounts import LAMPORTS_PER_SOL, Market, MarketStatus, Position
from .config import (
    ED25519_PROGRAM_ID,
    INSTRUCTIONS_SYSVAR_ID,
    SYSTEM_PROGRAM_ID,
    ProgramConfig,
)
from .errors import ProgramErrorCode, describe_error, parse_instruction_error
from .layout import LayoutError, handle_from_le_bytes, handle_to_le_bytes
from .pda import allowance_address, market_address, position_address, vault_address

__all__ = [
    "LAMPORTS_PER_SOL",
    "Market",
    "MarketStatus",
    "Position",
    "ED25519_PROGRAM_ID",
    "INSTRUCTIONS_SYSVAR_ID",
    "SYSTEM_PROGRAM_ID",
    "ProgramConfig",
    "ProgramErrorCode",
    "describe_error",
    "parse_instruction_error",
    "LayoutError",
    "handle_from_le_bytes",
    "handle_to_le_bytes",
    "allowance_address",
    "market_address",
    "position_address",
    "vault_address",
]

from .client import LedgerClient, create_ledger_client
from .config import LedgerConfig
from .exceptions import (
    LedgerAPIError,
    LedgerRateLimitError,
    LedgerRPCError,
    LedgerTimeoutError,
    LedgerTransactionError,
)
from .models import ProgramAccount, SignatureStatus, SimulationResult

__all__ = [
    "LedgerClient",
    "create_ledger_client",
    "LedgerConfig",
    "LedgerAPIError",
    "LedgerRateLimitError",
    "LedgerRPCError",
    "LedgerTimeoutError",
    "LedgerTransactionError",
    "ProgramAccount",
    "SignatureStatus",
    "SimulationResult",
]

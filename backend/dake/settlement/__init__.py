from .claim import (
    ClaimTransaction,
    ClaimTransactionBuilder,
    handle_to_claim_bytes,
    handle_to_decimal,
    plaintext_to_claim_bytes,
)
from .discovery import HandleDiscovery
from .encoder import PositionEncoder, ciphertext_to_bytes
from .errors import map_ledger_error
from .models import ClaimReceipt, SettlementOutcome
from .service import SettlementService

__all__ = [
    "ClaimTransaction",
    "ClaimTransactionBuilder",
    "handle_to_claim_bytes",
    "handle_to_decimal",
    "plaintext_to_claim_bytes",
    "HandleDiscovery",
    "PositionEncoder",
    "ciphertext_to_bytes",
    "map_ledger_error",
    "ClaimReceipt",
    "SettlementOutcome",
    "SettlementService",
]

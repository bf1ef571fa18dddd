from .attestation import build_ed25519_instruction_data, verify_signature_instructions
from .auth import OracleRequestAuth
from .client import OracleClient, create_oracle_client
from .config import OracleConfig
from .exceptions import (
    OracleAPIError,
    OracleAuthError,
    OracleBadRequestError,
    OracleNotReadyError,
    OracleRateLimitError,
    OracleServerError,
    OracleTimeoutError,
)
from .models import (
    DecryptionResult,
    SignatureInstruction,
    parse_plaintext_int,
    plaintext_is_true,
)

__all__ = [
    "build_ed25519_instruction_data",
    "verify_signature_instructions",
    "OracleRequestAuth",
    "OracleClient",
    "create_oracle_client",
    "OracleConfig",
    "OracleAPIError",
    "OracleAuthError",
    "OracleBadRequestError",
    "OracleNotReadyError",
    "OracleRateLimitError",
    "OracleServerError",
    "OracleTimeoutError",
    "DecryptionResult",
    "SignatureInstruction",
    "parse_plaintext_int",
    "plaintext_is_true",
]

"""Domain exceptions for betting and settlement.

Hierarchy:
- Input validation errors are raised locally before any network call.
- EncodingFailed aborts bet placement with nothing submitted.
- ProtocolError subclasses are recoverable: the caller may retry the
  settlement flow later.
- LedgerRejected passes ledger/program failures through with their code and logs.
"""


class DakeError(Exception):
    """Base exception for all Dake client errors."""

    pass


# ============================================================================
# Input validation
# ============================================================================


class ValidationError(DakeError):
    """Request rejected locally before touching the network."""

    pass


class WalletRequired(ValidationError):
    """No wallet configured for an operation that must sign."""

    pass


class InvalidStake(ValidationError):
    """Stake must be a positive amount."""

    pass


class InvalidSide(ValidationError):
    """Side must be YES/NO (1/0)."""

    pass


class MarketNotOpen(ValidationError):
    """Market is not accepting bets."""

    pass


class MarketNotResolved(ValidationError):
    """Market has no outcome yet."""

    pass


class NotPositionOwner(ValidationError):
    """Position belongs to a different wallet."""

    pass


class PositionExists(ValidationError):
    """Wallet already holds a position in this market."""

    pass


# ============================================================================
# Encoding
# ============================================================================


class EncodingFailed(DakeError):
    """Encrypting or decoding a side value failed."""

    pass


# ============================================================================
# Protocol (recoverable)
# ============================================================================


class ProtocolError(DakeError):
    """Recoverable settlement protocol failure."""

    pass


class SimulationFailed(ProtocolError):
    """check_winner simulation was rejected by the ledger."""

    def __init__(self, message: str, err: object = None, logs: list[str] | None = None):
        super().__init__(message)
        self.err = err
        self.logs = logs or []


class HandleUnavailable(ProtocolError):
    """The is-winner handle has not been produced yet."""

    pass


class DecryptionUnavailable(ProtocolError):
    """Oracle did not return a plaintext within the retry budget."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class StaleAttestation(ProtocolError):
    """Oracle attestation no longer valid, consumed, or for another handle."""

    pass


class AttestationInvalid(StaleAttestation):
    """Signature-verification instruction failed local verification."""

    pass


class NotWinner(ProtocolError):
    """Decrypted outcome is not a win; nothing to claim."""

    pass


# ============================================================================
# Ledger
# ============================================================================


class LedgerRejected(DakeError):
    """Ledger or program rejected a transaction."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        error_name: str | None = None,
        logs: list[str] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.error_name = error_name
        self.logs = logs or []


class AlreadyClaimed(LedgerRejected):
    """Position winnings were already claimed."""

    pass


class AccountNotFound(LedgerRejected):
    """Requested account does not exist on the ledger."""

    pass


class ConfirmationTimeout(DakeError):
    """Transaction was not confirmed before the ceiling. Retryable."""

    def __init__(self, message: str, signature: str | None = None):
        super().__init__(message)
        self.signature = signature

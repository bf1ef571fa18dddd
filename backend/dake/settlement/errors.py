"""Translate ledger failures into settlement exceptions."""

from dake.exceptions import (
    AlreadyClaimed,
    ConfirmationTimeout,
    DakeError,
    LedgerRejected,
    NotWinner,
    StaleAttestation,
)
from dake.program.errors import (
    ERROR_MESSAGES,
    ProgramErrorCode,
    parse_instruction_error,
    program_error,
)
from dake.services.ledger import (
    LedgerAPIError,
    LedgerRPCError,
    LedgerTimeoutError,
    LedgerTransactionError,
)


def map_ledger_error(
    exc: LedgerAPIError,
    signature_instruction_count: int = 0,
    oracle_program_id: str | None = None,
) -> DakeError:
    """Map a ledger exception onto the settlement taxonomy.

    Instructions before `signature_instruction_count` are the oracle's
    signature checks; a failure there, or inside the oracle program during the
    claim, means the attestation is stale.
    """
    if isinstance(exc, LedgerTimeoutError):
        return ConfirmationTimeout(str(exc), signature=exc.signature)

    if isinstance(exc, (LedgerRPCError, LedgerTransactionError)):
        err, logs = exc.err, exc.logs
    else:
        return LedgerRejected(str(exc))

    index, code = parse_instruction_error(err)
    known = program_error(code)

    if known == ProgramErrorCode.NOT_WINNER:
        return NotWinner(ERROR_MESSAGES[known])
    if known == ProgramErrorCode.ALREADY_CLAIMED:
        return AlreadyClaimed(
            ERROR_MESSAGES[known], code=code, error_name=known.name, logs=logs
        )

    if index is not None and index < signature_instruction_count:
        return StaleAttestation(f"Oracle signature check {index} rejected: {err}")
    if oracle_program_id and any(
        f"Program {oracle_program_id} failed" in line for line in logs
    ):
        return StaleAttestation(f"Oracle program rejected attestation: {err}")

    if known is not None:
        message = f"{known.name}: {ERROR_MESSAGES[known]}"
        return LedgerRejected(message, code=code, error_name=known.name, logs=logs)

    return LedgerRejected(f"Ledger rejected transaction: {err or exc}", code=code, logs=logs)

from typing import Any


class LedgerAPIError(Exception):
    """Base exception for ledger RPC errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerRateLimitError(LedgerAPIError):
    """Rate limit exceeded."""

    pass


class LedgerRPCError(LedgerAPIError):
    """JSON-RPC error object returned by the node."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(f"RPC Error {code}: {message}")
        self.code = code
        self.rpc_message = message
        self.data = data

    @property
    def err(self) -> Any:
        if isinstance(self.data, dict):
            return self.data.get("err")
        return None

    @property
    def logs(self) -> list[str]:
        if isinstance(self.data, dict):
            return self.data.get("logs") or []
        return []


class LedgerTransactionError(LedgerAPIError):
    """Transaction landed but failed."""

    def __init__(self, signature: str, err: Any, logs: list[str] | None = None):
        super().__init__(f"Transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err
        self.logs = logs or []


class LedgerTimeoutError(LedgerAPIError):
    """Transaction not confirmed within the configured ceiling."""

    def __init__(self, message: str, signature: str | None = None):
        super().__init__(message)
        self.signature = signature

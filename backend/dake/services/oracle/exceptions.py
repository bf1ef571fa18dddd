"""Custom exceptions for the decryption oracle service."""


class OracleAPIError(Exception):
    """Base exception for oracle API errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OracleAuthError(OracleAPIError):
    """Request signature rejected or caller has no allowance (401/403)."""

    pass


class OracleBadRequestError(OracleAPIError):
    """Invalid request parameters (400)."""

    pass


class OracleNotReadyError(OracleAPIError):
    """Oracle has not caught up with the ledger yet (404/409/425)."""

    pass


class OracleRateLimitError(OracleAPIError):
    """Rate limit exceeded (429)."""

    pass


class OracleServerError(OracleAPIError):
    """Server-side error (5xx)."""

    pass


class OracleTimeoutError(OracleAPIError):
    """Request exceeded the per-request ceiling."""

    pass

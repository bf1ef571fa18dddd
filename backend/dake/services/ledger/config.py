from pydantic import BaseModel


class LedgerConfig(BaseModel):
    """Configuration for the ledger JSON-RPC client."""

    rpc_url: str = "https://api.devnet.solana.com"
    commitment: str = "confirmed"
    timeout_seconds: float = 30.0
    max_connections: int = 20
    max_keepalive_connections: int = 10
    max_retries: int = 3
    confirm_timeout_seconds: float = 60.0
    confirm_poll_interval_seconds: float = 1.0

import base64
import time

from dake.wallet import Wallet


class OracleRequestAuth:
    """Authenticates decrypt requests with a wallet message signature."""

    def __init__(self, wallet: Wallet):
        self.wallet = wallet

    def build_message(self, handles: list[str], timestamp_ms: int) -> bytes:
        return f"dake-decrypt:{self.wallet.address}:{timestamp_ms}:{','.join(handles)}".encode(
            "utf-8"
        )

    def generate_signature(self, handles: list[str], timestamp_ms: int) -> str:
        signature = self.wallet.sign_message(self.build_message(handles, timestamp_ms))
        return base64.b64encode(signature).decode("utf-8")

    def get_auth_payload(self, handles: list[str]) -> dict[str, str]:
        timestamp_ms = int(time.time() * 1000)
        return {
            "address": self.wallet.address,
            "timestamp": str(timestamp_ms),
            "signature": self.generate_signature(handles, timestamp_ms),
        }

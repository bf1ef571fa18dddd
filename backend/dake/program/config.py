"""On-chain program addresses."""

from pydantic import BaseModel
from solders.pubkey import Pubkey

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
INSTRUCTIONS_SYSVAR_ID = Pubkey.from_string("Sysvar1nstructions1111111111111111111111111")
ED25519_PROGRAM_ID = Pubkey.from_string("Ed25519SigVerify111111111111111111111111111")


class ProgramConfig(BaseModel):
    """Addresses of the Dake program and the decryption oracle program."""

    program_id: str = "5apEYrFFuxT7yExEFz56kfmuYvc1YxcActFCMWnYpQea"
    oracle_program_id: str = "5sjEbPiqgZrYwR31ahR6Uk9wf5awoX61YGg7jExQSwaj"

    @property
    def program_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.program_id)

    @property
    def oracle_program_pubkey(self) -> Pubkey:
        return Pubkey.from_string(self.oracle_program_id)

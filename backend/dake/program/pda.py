"""Program-derived address helpers."""

from solders.pubkey import Pubkey

from .layout import handle_to_le_bytes


def market_address(market_id: int, program_id: Pubkey) -> tuple[Pubkey, int]:
    return Pubkey.find_program_address(
        [b"market", market_id.to_bytes(8, "little")], program_id
    )


def position_address(
    market: Pubkey, owner: Pubkey, program_id: Pubkey
) -> tuple[Pubkey, int]:
    return Pubkey.find_program_address(
        [b"position", bytes(market), bytes(owner)], program_id
    )


def vault_address(market: Pubkey, program_id: Pubkey) -> tuple[Pubkey, int]:
    return Pubkey.find_program_address([b"vault", bytes(market)], program_id)


def allowance_address(
    handle: int, owner: Pubkey, oracle_program_id: Pubkey
) -> tuple[Pubkey, int]:
    """Allowance record granting `owner` read access to `handle` on the oracle."""
    return Pubkey.find_program_address(
        [handle_to_le_bytes(handle), bytes(owner)], oracle_program_id
    )

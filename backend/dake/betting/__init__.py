from .models import BetPreview, BetReceipt
from .service import BetService, parse_side, sol_to_lamports

__all__ = ["BetPreview", "BetReceipt", "BetService", "parse_side", "sol_to_lamports"]

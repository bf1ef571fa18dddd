"""Dake CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from solders.pubkey import Pubkey

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from dake import __version__
from dake.betting import BetService
from dake.config import Settings, get_settings
from dake.exceptions import AlreadyClaimed, DakeError, ValidationError, WalletRequired
from dake.portfolio import PortfolioReader
from dake.pricing import Side, calculate_odds, calculate_payout
from dake.program import LAMPORTS_PER_SOL, Market
from dake.services.ledger import LedgerAPIError, LedgerClient
from dake.services.oracle import OracleAPIError, OracleClient
from dake.settlement import HandleDiscovery, SettlementService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Dake Configuration
# Secrets (WALLET_KEYPAIR, WALLET_KEYPAIR_PATH, LOGFIRE_TOKEN) belong in .env, not here.

ledger:
  rpc_url: https://api.devnet.solana.com
  commitment: confirmed
  confirm_timeout_seconds: 60

oracle:
  base_url: http://localhost:8787
  request_timeout_seconds: 30
  decrypt_backoff_seconds: [3, 5, 8, 12]
  verify_attestations: true

program:
  program_id: 5apEYrFFuxT7yExEFz56kfmuYvc1YxcActFCMWnYpQea
  oracle_program_id: 5sjEbPiqgZrYwR31ahR6Uk9wf5awoX61YGg7jExQSwaj
"""


def _init_logfire(settings: Settings) -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from dake.observability import initialize_logfire

        initialize_logfire(settings)
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _sol(lamports: int) -> str:
    return f"{lamports / LAMPORTS_PER_SOL:,.4f} SOL"


def _format_odds(value: float) -> str:
    return "∞" if value == float("inf") else f"{value:.2f}x"


def _print_market(market: Market) -> None:
    odds = market.odds()
    print(f"\n#{market.market_id}  {market.question}")
    print(f"  Address: {market.address}")
    print(f"  Status: {market.status.label}")
    print(f"  Resolves: {market.resolution_datetime:%Y-%m-%d %H:%M UTC}")
    print(f"  Pool: {_sol(market.total_pool)} ({market.participant_count} bettors)")
    print(
        f"  YES: {_sol(market.total_yes_amount)}  {_format_odds(odds.yes_odds)}  "
        f"({odds.yes_probability:.1f}%)"
    )
    print(
        f"  NO:  {_sol(market.total_no_amount)}  {_format_odds(odds.no_odds)}  "
        f"({odds.no_probability:.1f}%)"
    )


def _run(args: argparse.Namespace, coro_factory) -> int:
    """Run an async command, turning domain errors into exit code 1."""
    settings = get_settings()
    _init_logfire(settings)

    try:
        return asyncio.run(coro_factory(settings, args))
    except AlreadyClaimed as e:
        print(f"\n✓ {e}\n")
        return 0
    except DakeError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"\n❌ {type(e).__name__}: {e}\n")
        return 1
    except (LedgerAPIError, OracleAPIError) as e:
        logger.error(f"Service error: {e}")
        print(f"\n❌ Service error: {e}\n")
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.\n")
        return 130


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set WALLET_KEYPAIR or WALLET_KEYPAIR_PATH in .env")
        print("2. Review data/config.yaml (RPC endpoint, oracle URL)")
        print("3. Run 'python -m dake market --list' to browse markets\n")
        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_odds(args: argparse.Namespace) -> int:
    """Compute odds and an optional payout preview from pool sizes."""
    try:
        odds = calculate_odds(args.yes_pool, args.no_pool)
    except ValueError as e:
        print(f"\n❌ {e}\n")
        return 1

    print(f"\nYES: {_format_odds(odds.yes_odds)} ({odds.yes_probability:.1f}%)")
    print(f"NO:  {_format_odds(odds.no_odds)} ({odds.no_probability:.1f}%)")

    if args.stake is not None:
        side = Side(args.side)
        quote = calculate_payout(args.yes_pool, args.no_pool, side, args.stake)
        if quote is None:
            print("\nStake must be greater than zero for a payout preview.\n")
            return 1
        print(f"\nBet {quote.stake:g} on {side.value.upper()}:")
        print(f"  Payout: {quote.payout:.4f}")
        print(f"  Profit: {quote.profit:.4f}")
        print(f"  Multiplier: {quote.multiplier:.2f}x")
        print(f"  Implied probability: {quote.implied_probability:.1f}%")
    print()
    return 0


async def _market(settings: Settings, args: argparse.Namespace) -> int:
    async with LedgerClient(settings.ledger) as ledger:
        reader = PortfolioReader(ledger, settings.program)
        if args.address:
            _print_market(await reader.get_market(args.address))
        else:
            markets = await reader.list_markets()
            if not markets:
                print("\nNo markets found.")
            for market in markets:
                _print_market(market)
    print()
    return 0


def cmd_market(args: argparse.Namespace) -> int:
    """Show one market or list all markets."""
    return _run(args, _market)


async def _positions(settings: Settings, args: argparse.Namespace) -> int:
    owner = args.owner
    if not owner:
        wallet = settings.get_wallet()
        if wallet is None:
            raise WalletRequired("Pass --owner or configure a wallet")
        owner = wallet.address

    try:
        owner_key = Pubkey.from_string(owner)
    except ValueError as e:
        raise ValidationError(f"Invalid owner address {owner!r}: {e}") from e

    async with LedgerClient(settings.ledger) as ledger:
        reader = PortfolioReader(ledger, settings.program)
        positions = await reader.list_positions(owner_key)

    print(f"\n=== Positions for {owner} ===")
    if not positions:
        print("  (None)")
    for position, market in positions:
        if position.claimed:
            state = "claimed"
        elif market.is_resolved:
            state = "checked" if position.is_checked else "ready to check"
        else:
            state = market.status.label.lower()
        print(f"\n#{market.market_id}  {market.question}")
        print(f"  Position: {position.address}")
        print(f"  Stake: {_sol(position.amount)}  Locked payout: {_sol(position.locked_payout)}")
        print(f"  State: {state}")
    print()
    return 0


def cmd_positions(args: argparse.Namespace) -> int:
    """List positions owned by a wallet."""
    return _run(args, _positions)


async def _bet(settings: Settings, args: argparse.Namespace) -> int:
    wallet = settings.get_wallet()
    async with LedgerClient(settings.ledger) as ledger, OracleClient(settings.oracle, wallet) as oracle:
        service = BetService(ledger, oracle, wallet, settings.program)
        if args.preview:
            preview = await service.preview(args.market, args.side, args.amount)
            print(f"\nBet {_sol(preview.amount)} on {preview.side.value.upper()}:")
            print(f"  Estimated payout: {_sol(preview.estimated_locked_payout)}")
            print(f"  Multiplier: {preview.quote.multiplier:.2f}x")
            print(f"  Implied probability: {preview.quote.implied_probability:.1f}%\n")
            return 0

        receipt = await service.place_bet(args.market, args.side, args.amount)

    print(f"\n✓ Bet placed ({receipt.signature})")
    print(f"  Position: {receipt.position}")
    print(f"  Stake: {_sol(receipt.amount)}")
    print(f"  Locked payout: {_sol(receipt.locked_payout)}\n")
    return 0


def cmd_bet(args: argparse.Namespace) -> int:
    """Place a confidential bet."""
    return _run(args, _bet)


async def _check(settings: Settings, args: argparse.Namespace) -> int:
    wallet = settings.get_wallet()
    async with LedgerClient(settings.ledger) as ledger, OracleClient(settings.oracle, wallet) as oracle:
        service = SettlementService(ledger, oracle, wallet, settings.program)
        outcome = await service.check_winner(args.position, refresh=args.refresh)

    if outcome.is_winner:
        print(f"\n🎉 Winner! Claimable: {_sol(outcome.expected_payout)}")
        print("Run 'python -m dake claim' to collect it.\n")
    else:
        print("\nNot a winner this time.\n")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Discover and decrypt a position's winner status."""
    return _run(args, _check)


async def _claim(settings: Settings, args: argparse.Namespace) -> int:
    wallet = settings.get_wallet()
    async with LedgerClient(settings.ledger) as ledger, OracleClient(settings.oracle, wallet) as oracle:
        service = SettlementService(ledger, oracle, wallet, settings.program)
        receipt = await service.claim(args.position, refresh=args.refresh)

    print(f"\n✓ Claimed {_sol(receipt.payout)} ({receipt.signature})\n")
    return 0


def cmd_claim(args: argparse.Namespace) -> int:
    """Claim winnings for a position."""
    return _run(args, _claim)


async def _grant_access(settings: Settings, args: argparse.Namespace) -> int:
    wallet = settings.get_wallet()
    if wallet is None:
        raise WalletRequired("A wallet is required to grant decrypt access")

    async with LedgerClient(settings.ledger) as ledger:
        discovery = HandleDiscovery(ledger, wallet, settings.program)
        position = await discovery.reader.get_position(args.position)
        signature = await discovery.grant_access(position)

    print(f"\n✓ Decrypt access granted ({signature})\n")
    return 0


def cmd_grant_access(args: argparse.Namespace) -> int:
    """Re-grant decrypt access to a checked position's handle."""
    return _run(args, _grant_access)


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Dake: confidential parimutuel prediction markets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Dake {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_odds = subparsers.add_parser(
        "odds",
        help="Compute odds and payout from pool sizes (offline)",
    )
    parser_odds.add_argument("--yes-pool", type=float, required=True)
    parser_odds.add_argument("--no-pool", type=float, required=True)
    parser_odds.add_argument("--side", choices=["yes", "no"], default="yes")
    parser_odds.add_argument("--stake", type=float, help="Stake to preview a payout for")
    parser_odds.set_defaults(func=cmd_odds)

    parser_market = subparsers.add_parser(
        "market",
        help="Show a market, or list all markets when no address is given",
    )
    parser_market.add_argument("address", nargs="?", help="Market account address")
    parser_market.set_defaults(func=cmd_market)

    parser_positions = subparsers.add_parser(
        "positions",
        help="List positions owned by a wallet",
    )
    parser_positions.add_argument("--owner", help="Owner address (defaults to configured wallet)")
    parser_positions.set_defaults(func=cmd_positions)

    parser_bet = subparsers.add_parser(
        "bet",
        help="Place a confidential bet",
    )
    parser_bet.add_argument("market", help="Market account address")
    parser_bet.add_argument("side", choices=["yes", "no"], type=str.lower)
    parser_bet.add_argument("amount", help="Stake in SOL")
    parser_bet.add_argument(
        "--preview",
        action="store_true",
        help="Show the estimated payout without submitting",
    )
    parser_bet.set_defaults(func=cmd_bet)

    parser_check = subparsers.add_parser(
        "check",
        help="Check whether a position won",
    )
    parser_check.add_argument("position", help="Position account address")
    parser_check.add_argument("--refresh", action="store_true", help="Ignore cached decryption")
    parser_check.set_defaults(func=cmd_check)

    parser_claim = subparsers.add_parser(
        "claim",
        help="Claim winnings for a position",
    )
    parser_claim.add_argument("position", help="Position account address")
    parser_claim.add_argument("--refresh", action="store_true", help="Request a fresh decryption")
    parser_claim.set_defaults(func=cmd_claim)

    parser_grant = subparsers.add_parser(
        "grant-access",
        help="Re-grant decrypt access for a checked position",
    )
    parser_grant.add_argument("position", help="Position account address")
    parser_grant.set_defaults(func=cmd_grant_access)

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

"""
Command-line interface for the transaction engine.

Provides commands for inspecting the network and sending transfers.
"""

import argparse
import asyncio
import logging
import sys

import structlog

from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from txengine import __version__
from txengine.budget.compute_budget import (
    DEFAULT_PRIORITY_FEE_PERCENTILE,
    get_priority_fee_suggestion,
)
from txengine.config import EngineConfig, NetworkType, load_config
from txengine.core.operation import OperationBundle
from txengine.core.options import LEGACY, AutoComputeBudget, Commitment, FixedComputeBudget
from txengine.node.rpc import SolanaRpcAdapter
from txengine.tx.builder import TransactionBuilder
from txengine.tx.signer import KeypairWallet


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--network",
        choices=[n.value for n in NetworkType],
        help="Solana cluster (default: from TXENGINE_NETWORK or devnet)",
    )
    common.add_argument(
        "--rpc-url",
        help="Custom JSON-RPC endpoint",
    )
    common.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    common.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )

    parser = argparse.ArgumentParser(
        prog="txengine",
        description="Build, budget and send Solana transactions",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Blockhash command
    blockhash_parser = subparsers.add_parser(
        "blockhash", parents=[common], help="Show the latest blockhash"
    )
    blockhash_parser.add_argument(
        "--commitment",
        choices=[c.value for c in Commitment],
        default=Commitment.CONFIRMED.value,
    )

    # Fees command
    fees_parser = subparsers.add_parser(
        "fees", parents=[common], help="Show recent priority fees for accounts"
    )
    fees_parser.add_argument(
        "--account",
        action="append",
        default=[],
        help="Writable account to sample fees for (repeatable)",
    )
    fees_parser.add_argument(
        "--percentile",
        type=float,
        default=DEFAULT_PRIORITY_FEE_PERCENTILE,
        help="Fraction between 0 and 1 (default: 0.9)",
    )

    # Transfer command
    transfer_parser = subparsers.add_parser(
        "transfer", parents=[common], help="Transfer lamports from the configured wallet"
    )
    transfer_parser.add_argument(
        "--to",
        required=True,
        help="Recipient address",
    )
    transfer_parser.add_argument(
        "--lamports",
        type=int,
        required=True,
        help="Amount to transfer",
    )
    transfer_parser.add_argument(
        "--keypair",
        help="Path to JSON keypair file (default: TXENGINE_WALLET_KEYPAIR_PATH)",
    )
    fee_group = transfer_parser.add_mutually_exclusive_group()
    fee_group.add_argument(
        "--priority-fee",
        type=int,
        help="Total priority fee in lamports",
    )
    fee_group.add_argument(
        "--auto-fee",
        action="store_true",
        help="Estimate compute limit and priority fee from the network",
    )
    transfer_parser.add_argument(
        "--legacy",
        action="store_true",
        help="Build a legacy transaction instead of v0",
    )
    transfer_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the measured transaction size",
    )

    return parser


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Create configuration from the environment and command-line overrides."""
    overrides = {}
    if args.network:
        overrides["network"] = NetworkType(args.network)
    if args.rpc_url:
        overrides["rpc_url"] = args.rpc_url
    if getattr(args, "keypair", None):
        overrides["wallet_keypair_path"] = args.keypair
    return load_config(**overrides)


async def show_blockhash(args: argparse.Namespace) -> None:
    """Print the latest blockhash."""
    node = SolanaRpcAdapter(build_config(args))
    try:
        blockhash = await node.get_latest_blockhash(Commitment(args.commitment))
        height = await node.get_block_height(Commitment(args.commitment))
    finally:
        await node.disconnect()

    print(f"Blockhash:              {blockhash.blockhash}")
    print(f"Last valid block height: {blockhash.last_valid_block_height}")
    print(f"Current block height:    {height}")


async def show_fees(args: argparse.Namespace) -> None:
    """Print recent priority fees and the percentile suggestion."""
    accounts = [Pubkey.from_string(a) for a in args.account]
    node = SolanaRpcAdapter(build_config(args))
    try:
        fees = await node.get_recent_prioritization_fees(accounts)
    finally:
        await node.disconnect()

    if not fees:
        print("No recent prioritization fees reported.")
        return

    nonzero = [f for f in fees if f.prioritization_fee > 0]
    suggestion = get_priority_fee_suggestion(fees, args.percentile)
    print(f"Samples:    {len(fees)} ({len(nonzero)} non-zero)")
    print(f"Slots:      {min(f.slot for f in fees)} - {max(f.slot for f in fees)}")
    print(f"Max:        {max(f.prioritization_fee for f in fees)} micro-lamports/CU")
    print(f"P{args.percentile * 100:g}:  {suggestion} micro-lamports/CU")


async def send_transfer(args: argparse.Namespace) -> None:
    """Build and send (or measure) a SOL transfer."""
    config = build_config(args)
    wallet = KeypairWallet.from_config(config)
    node = SolanaRpcAdapter(config)

    builder = TransactionBuilder(node, wallet, config.to_builder_options())
    builder.add_operation(
        OperationBundle(
            instructions=[
                transfer(
                    TransferParams(
                        from_pubkey=wallet.public_key,
                        to_pubkey=Pubkey.from_string(args.to),
                        lamports=args.lamports,
                    )
                )
            ]
        )
    )

    build_options = {}
    if args.legacy:
        build_options["max_supported_transaction_version"] = LEGACY
    if args.auto_fee:
        build_options["compute_budget_option"] = AutoComputeBudget()
    elif args.priority_fee is not None:
        build_options["compute_budget_option"] = FixedComputeBudget(
            priority_fee_lamports=args.priority_fee
        )

    if args.dry_run:
        size = builder.measure_size(**build_options)
        print(f"Transaction size: {size} bytes")
        return

    try:
        signature = await builder.build_and_execute(build_options)
    finally:
        await node.disconnect()

    print(f"Signature: {signature}")


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level, args.log_json)

    commands = {
        "blockhash": show_blockhash,
        "fees": show_fees,
        "transfer": send_transfer,
    }
    try:
        asyncio.run(commands[args.command](args))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

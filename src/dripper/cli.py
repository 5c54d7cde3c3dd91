"""CLI subcommands for Dripper testing and operations.

Provides command-line interface for:
- Account operations (address, balance)
- Faucet operations (status, send)
"""

import argparse
import asyncio
import json
import sys

from dripper.blockchain.client import SubstrateClient
from dripper.blockchain.connection import ChainConnection
from dripper.blockchain.networks import NetworkData, format_amount, get_network_data
from dripper.config import DripperConfig
from dripper.core.wallet import MnemonicWallet, load_wallet


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="dripper",
        description="Dripper - Substrate token faucet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would happen without executing",
    )
    parser.add_argument(
        "--generate-mnemonic",
        metavar="FILE",
        help="Generate a new account mnemonic and save it to FILE, then exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Account subcommand
    account_parser = subparsers.add_parser("account", help="Faucet account operations")
    account_parser.add_argument(
        "--backup",
        action="store_true",
        help="Use the backup account instead of the primary",
    )
    account_sub = account_parser.add_subparsers(dest="account_command")
    account_sub.add_parser("address", help="Show account address")
    account_sub.add_parser("balance", help="Show account free balance")

    # Faucet subcommand
    faucet_parser = subparsers.add_parser("faucet", help="Faucet operations")
    faucet_sub = faucet_parser.add_subparsers(dest="faucet_command")

    faucet_sub.add_parser("status", help="Show network and faucet balance")

    send_parser = faucet_sub.add_parser("send", help="Send tokens from the primary account")
    send_parser.add_argument("address", type=str, help="Recipient address")
    send_parser.add_argument(
        "amount",
        type=str,
        nargs="?",
        default=None,
        help="Amount in smallest units (default: network drip amount)",
    )

    # Run subcommand (start service)
    subparsers.add_parser("run", help="Start the Dripper service")

    return parser


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, config: DripperConfig, dry_run: bool = False, json_output: bool = False):
        self.config = config
        self.dry_run = dry_run
        self.json_output = json_output
        self._network: NetworkData | None = None
        self._client: SubstrateClient | None = None

    @property
    def network(self) -> NetworkData:
        """Get the configured network (lazy loaded)."""
        if self._network is None:
            self._network = get_network_data(self.config.network)
        return self._network

    @property
    def client(self) -> SubstrateClient:
        """Get the chain client (lazy loaded)."""
        if self._client is None:
            endpoint = self.config.rpc_endpoint or self.network.rpc_endpoint
            self._client = SubstrateClient(
                ChainConnection(endpoint, self.network.ss58_format, self.network.app_id)
            )
        return self._client

    def wallet(self, backup: bool = False) -> MnemonicWallet:
        """Load the primary or backup wallet."""
        if backup:
            wallet = load_wallet(
                self.config.backup_mnemonic,
                self.config.backup_mnemonic_file,
                self.network.ss58_format,
            )
            name = "DRIPPER_FAUCET_BACKUP_ACCOUNT_MNEMONIC"
        else:
            wallet = load_wallet(
                self.config.faucet_mnemonic,
                self.config.faucet_mnemonic_file,
                self.network.ss58_format,
            )
            name = "DRIPPER_FAUCET_ACCOUNT_MNEMONIC"
        if wallet is None:
            raise ValueError(f"No account configured. Set {name} or {name}_FILE")
        return wallet

    def output(self, data: dict) -> None:
        """Output data in the appropriate format."""
        if self.json_output:
            print(json.dumps(data, indent=2))
        else:
            for key, value in data.items():
                print(f"{key}: {value}")


# Account commands


def cmd_account_address(ctx: CLIContext, backup: bool = False) -> int:
    """Show account address."""
    try:
        ctx.output({"address": ctx.wallet(backup).address})
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


def cmd_account_balance(ctx: CLIContext, backup: bool = False) -> int:
    """Show account free balance."""
    try:
        address = ctx.wallet(backup).address
        balance = asyncio.run(ctx.client.get_free_balance(address))
        ctx.output(
            {
                "address": address,
                "balance": str(balance),
                "formatted": f"{format_amount(balance, ctx.network.decimals)} "
                f"{ctx.network.currency}",
            }
        )
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


# Faucet commands


def cmd_faucet_status(ctx: CLIContext) -> int:
    """Show network and faucet balance."""
    try:
        address = ctx.wallet().address

        async def query() -> tuple[str, int]:
            return await ctx.client.chain_name(), await ctx.client.get_free_balance(address)

        chain, balance = asyncio.run(query())
        ctx.output(
            {
                "network": ctx.network.network_name,
                "chain": chain,
                "rpc": ctx.client.connection.rpc_endpoint,
                "address": address,
                "balance": f"{format_amount(balance, ctx.network.decimals)} "
                f"{ctx.network.currency}",
                "balance_cap": ctx.network.balance_cap,
                "drip_amount": f"{ctx.network.drip_amount} {ctx.network.currency}",
            }
        )
        return 0
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


def cmd_faucet_send(ctx: CLIContext, address: str, amount_str: str | None) -> int:
    """Send tokens from the primary account, bypassing every faucet check."""
    try:
        amount = int(amount_str) if amount_str is not None else ctx.network.default_drip_amount
        if amount <= 0:
            ctx.output({"error": "Amount must be positive"})
            return 1

        if ctx.dry_run:
            ctx.output(
                {
                    "dry_run": True,
                    "action": "transfer",
                    "to": address,
                    "amount": str(amount),
                    "message": f"Would send {format_amount(amount, ctx.network.decimals)} "
                    f"{ctx.network.currency} to {address}",
                }
            )
            return 0

        keypair = ctx.wallet().get_keypair()
        tx_hash = asyncio.run(ctx.client.transfer(keypair, address, amount))
        ctx.output(
            {
                "success": True,
                "action": "transfer",
                "to": address,
                "amount": str(amount),
                "tx_hash": tx_hash,
            }
        )
        return 0
    except ValueError as e:
        ctx.output({"error": f"Invalid amount: {amount_str}" if amount_str else str(e)})
        return 1
    except Exception as e:
        ctx.output({"error": str(e)})
        return 1


def run_cli(args: argparse.Namespace) -> int:
    """Execute CLI command based on parsed arguments.

    Returns
    -------
    int
        Exit code: 0 for success, positive for error, -1 signals caller
        to show help (no CLI command specified).
    """
    try:
        config = DripperConfig()
    except Exception as e:
        if args.json:
            print(json.dumps({"error": f"Configuration error: {e}"}))
        else:
            print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    ctx = CLIContext(config, dry_run=args.dry_run, json_output=args.json)

    if args.command == "account":
        if args.account_command == "address":
            return cmd_account_address(ctx, backup=args.backup)
        elif args.account_command == "balance":
            return cmd_account_balance(ctx, backup=args.backup)
        else:
            print("Usage: dripper account [--backup] [address|balance]", file=sys.stderr)
            return 1

    elif args.command == "faucet":
        if args.faucet_command == "status":
            return cmd_faucet_status(ctx)
        elif args.faucet_command == "send":
            return cmd_faucet_send(ctx, args.address, args.amount)
        else:
            print("Usage: dripper faucet [status|send]", file=sys.stderr)
            return 1

    else:
        return -1

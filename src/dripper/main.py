#!/usr/bin/env python3
"""Dripper - Substrate token faucet.

Entry point for the Dripper service.
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path

from dripper.api.routes import register_routes
from dripper.blockchain.client import SubstrateClient
from dripper.blockchain.connection import ChainConnection
from dripper.blockchain.networks import UnknownNetworkError, get_network_data, parse_amount
from dripper.cli import create_parser, run_cli
from dripper.config import DripperConfig
from dripper.core.wallet import generate_mnemonic_file, load_wallet
from dripper.faucet import (
    DripRequestHandler,
    FaucetAccountPool,
    PrivilegeList,
    QuotaStore,
    Recaptcha,
    RetryQueueStore,
    TransferDispatcher,
)
from dripper.observability.health import ChainConnectionCheck, FaucetAccountCheck, HealthServer
from dripper.observability.logging import configure_logging
from dripper.slack.adapter import SlackAdapter
from dripper.slack.commands import register_commands


def generate_mnemonic(output_path: str) -> None:
    """Generate a new faucet account and save its mnemonic to a file.

    Parameters
    ----------
    output_path : str
        Path to save the mnemonic file.
    """
    address = generate_mnemonic_file(output_path)
    key_path = Path(output_path)

    print(f"""
Account generated successfully!

  Address:  {address}
  Mnemonic: {key_path.absolute()}

Next steps:

  1. Fund this address on your target network

  2. Launch Dripper with this account:

     # Recommended: Use the file path directly (more secure)
     export DRIPPER_FAUCET_ACCOUNT_MNEMONIC_FILE={key_path.absolute()}
     dripper run

     # Alternative: Via environment variable
     # WARNING: This may expose your mnemonic in shell history or process list!
     export DRIPPER_FAUCET_ACCOUNT_MNEMONIC="$(cat {key_path})"
     dripper run

IMPORTANT: Keep this mnemonic secure. Anyone with access can control the account.
""")


def parse_args():
    """Parse command line arguments."""
    return create_parser().parse_args()


async def run_service() -> None:
    """Run the Dripper service (long-running mode).

    Wires up and starts all service components:
    - Chain connection, client and faucet accounts
    - Quota store and retry queue (Redis, with in-memory fallback)
    - Drip request handler behind the HTTP API
    - HealthServer for probes and metrics
    - SlackAdapter for Slack Socket Mode, when tokens are set
    """
    config = DripperConfig()
    configure_logging(level=config.log_level, log_format=config.log_format)

    logger = logging.getLogger(__name__)
    logger.info("Dripper starting")

    try:
        network = get_network_data(config.network)
    except UnknownNetworkError as e:
        logger.error(str(e))
        sys.exit(1)

    rpc_endpoint = config.rpc_endpoint or network.rpc_endpoint
    logger.info("Network: %s", network.network_name)
    logger.info("RPC endpoint: %s", rpc_endpoint)

    try:
        primary = load_wallet(
            config.faucet_mnemonic, config.faucet_mnemonic_file, network.ss58_format
        )
        backup = load_wallet(
            config.backup_mnemonic, config.backup_mnemonic_file, network.ss58_format
        )
    except (ValueError, FileNotFoundError) as e:
        logger.error("Failed to load faucet account: %s", e)
        sys.exit(1)

    if primary is None:
        logger.warning(
            "No faucet account configured. Set DRIPPER_FAUCET_ACCOUNT_MNEMONIC or "
            "DRIPPER_FAUCET_ACCOUNT_MNEMONIC_FILE; drips will be refused"
        )
    else:
        logger.info("Faucet account loaded: %s", primary.address)
    if backup is not None:
        logger.info("Backup account loaded: %s", backup.address)

    connection = ChainConnection(rpc_endpoint, network.ss58_format, network.app_id)
    client = SubstrateClient(connection)

    accounts = FaucetAccountPool(
        client=client,
        network=network,
        primary=primary,
        backup=backup,
        poll_interval_seconds=config.balance_poll_seconds,
        rpc_timeout_seconds=config.rpc_timeout_seconds,
    )

    quota = QuotaStore(redis_url=config.redis_url)
    await quota.connect()
    retry_queue = RetryQueueStore(redis_url=config.redis_url)
    await retry_queue.connect()

    privileges = PrivilegeList(config.privileged_requester_ids)
    logger.info("Privileged requesters: %d", len(privileges))

    dispatcher = TransferDispatcher(
        client=client,
        accounts=accounts,
        retry_queue=retry_queue,
        network=network,
        batch_threshold=config.batch_threshold,
        settle_seconds=config.settle_seconds,
        rpc_timeout_seconds=config.rpc_timeout_seconds,
    )
    handler = DripRequestHandler(
        dispatcher=dispatcher,
        accounts=accounts,
        quota=quota,
        captcha=Recaptcha(config.recaptcha_secret),
        privileges=privileges,
    )

    if config.drip_amount is not None:
        default_amount = parse_amount(config.drip_amount, network.decimals)
    else:
        default_amount = network.default_drip_amount

    # Create shutdown event
    shutdown_event = asyncio.Event()

    # Use asyncio signal handlers for event-loop-safe signal handling
    loop = asyncio.get_running_loop()

    def on_shutdown_signal(sig_name: str) -> None:
        logger.info("Received signal %s, initiating shutdown", sig_name)
        shutdown_event.set()

    loop.add_signal_handler(signal.SIGTERM, lambda: on_shutdown_signal("SIGTERM"))
    loop.add_signal_handler(signal.SIGINT, lambda: on_shutdown_signal("SIGINT"))

    server = HealthServer(host=config.http_host, port=config.http_port)
    server.add_check(ChainConnectionCheck(connection))
    server.add_check(FaucetAccountCheck(accounts))
    register_routes(
        server.app, handler, accounts, default_amount, relay_secret=config.bot_relay_secret
    )
    await server.start()
    logger.info("HTTP server started on %s:%d", config.http_host, config.http_port)

    await accounts.start()
    logger.info("Balance monitor started")

    slack_adapter = None
    if config.slack_enabled:
        slack_adapter = SlackAdapter(
            bot_token=config.slack_bot_token,
            app_token=config.slack_app_token,
        )
        register_commands(slack_adapter.app, handler, accounts, network)
        logger.info("Slack commands registered")
        await slack_adapter.start()
    else:
        logger.info("Slack tokens not set, Slack surface disabled")

    logger.info("Dripper service ready")

    # Wait for shutdown signal
    await shutdown_event.wait()

    # Graceful shutdown
    logger.info("Dripper shutting down...")
    if slack_adapter is not None:
        await slack_adapter.stop()
    await server.stop()
    await accounts.stop()
    await handler.wait_for_background()
    await dispatcher.wait_for_background()
    await retry_queue.close()
    await quota.close()
    await connection.close()
    logger.info("Dripper shutdown complete")


def main() -> None:
    """Main entry point for Dripper.

    CLI subcommands drive their own event loop, so only the service runs
    under ``asyncio.run`` here.
    """
    args = parse_args()

    if args.generate_mnemonic:
        generate_mnemonic(args.generate_mnemonic)
        return

    # Handle CLI subcommands
    if args.command and args.command != "run":
        exit_code = run_cli(args)
        if exit_code >= 0:
            sys.exit(exit_code)
        # exit_code < 0 means show help
        create_parser().print_help()
        sys.exit(0)

    # No subcommand or "run" - start service
    asyncio.run(run_service())


if __name__ == "__main__":
    main()

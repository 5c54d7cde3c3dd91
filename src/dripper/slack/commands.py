"""Slack command handlers for Dripper.

Commands:
- /drip <address> [parachain_id] - Request a drip
- /drip balance - Show the faucet balance
- /drip help - Show help message
"""

import logging

from slack_bolt.async_app import AsyncApp
from substrateinterface.utils.ss58 import is_valid_ss58_address

from dripper.blockchain.networks import NetworkData
from dripper.faucet.accounts import FaucetAccountPool
from dripper.faucet.handler import DripRequestHandler, InternalDripRequest

from .formatter import MessageFormatter

logger = logging.getLogger(__name__)


def _parse_drip_args(text: str) -> tuple[str | None, str | None, str | None]:
    """Parse address and optional parachain ID from command text.

    Returns
    -------
    tuple[str | None, str | None, str | None]
        (address, parachain_id, error_message)
    """
    parts = text.split()
    if not parts:
        return None, None, "Please provide an address: `/drip <address> [parachain_id]`"
    if len(parts) > 2:
        return None, None, "Too many arguments: `/drip <address> [parachain_id]`"

    address = parts[0]
    if not is_valid_ss58_address(address):
        return None, None, f"Invalid address: `{address}`"

    parachain_id = parts[1] if len(parts) == 2 else None
    return address, parachain_id, None


def register_commands(
    app: AsyncApp,
    handler: DripRequestHandler,
    accounts: FaucetAccountPool,
    network: NetworkData,
) -> None:
    """Register the /drip slash command with the Slack app.

    Parameters
    ----------
    app : AsyncApp
        Slack Bolt async app instance.
    handler : DripRequestHandler
        Handles drip requests.
    accounts : FaucetAccountPool
        Source of the faucet balance.
    network : NetworkData
        Active network.
    """
    formatter = MessageFormatter(network)

    @app.command("/drip")
    async def handle_drip_command(ack, command, respond):
        """Handle /drip slash command."""
        await ack()

        try:
            user_id = command["user_id"]
            text = command.get("text", "").strip()
            subcommand = text.split(None, 1)[0].lower() if text else "help"

            logger.info(
                "Received /drip command",
                extra={"user_id": user_id, "command_args": text},
            )

            if subcommand == "help":
                await respond(formatter.format_help())
            elif subcommand == "balance":
                await respond(formatter.format_balance(await accounts.get_faucet_balance()))
            else:
                await _handle_drip(respond, handler, formatter, network, user_id, text)
        except Exception:
            logger.exception("Error handling /drip command")
            await respond(formatter.format_error("An unexpected error occurred. Please try again."))


async def _handle_drip(
    respond,
    handler: DripRequestHandler,
    formatter: MessageFormatter,
    network: NetworkData,
    user_id: str,
    args: str,
) -> None:
    """Relay a drip on behalf of a Slack user."""
    address, parachain_id, error = _parse_drip_args(args)
    if error:
        await respond(formatter.format_error(error))
        return

    request = InternalDripRequest(
        address=address,
        amount=network.default_drip_amount,
        requester_id=user_id,
        parachain_id=parachain_id,
    )
    result = await handler.handle_request(request)

    if result.ok:
        await respond(formatter.format_drip_success(address, request.amount, result.tx_hash))
    else:
        await respond(formatter.format_drip_error(result.error))

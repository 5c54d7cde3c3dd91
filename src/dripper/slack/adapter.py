"""Slack adapter for Dripper.

The Slack app is the internal requester surface: each slash command is
relayed with the Slack user ID as the requester identity. Connects over
Socket Mode, so no public webhook is needed.
"""

import logging

from pydantic import SecretStr
from slack_bolt.adapter.socket_mode.async_handler import AsyncSocketModeHandler
from slack_bolt.async_app import AsyncApp

logger = logging.getLogger(__name__)


class SlackAdapter:
    """Slack Bolt app with a Socket Mode connection lifecycle.

    Parameters
    ----------
    bot_token : SecretStr
        Slack bot token (xoxb-...).
    app_token : SecretStr
        Slack app-level token (xapp-...) for Socket Mode.
    """

    def __init__(self, bot_token: SecretStr, app_token: SecretStr):
        self._app_token = app_token
        self._app = AsyncApp(token=bot_token.get_secret_value())
        self._handler: AsyncSocketModeHandler | None = None

    @property
    def app(self) -> AsyncApp:
        """Get the Slack Bolt app instance."""
        return self._app

    @property
    def is_running(self) -> bool:
        """Check if the Socket Mode connection is open."""
        return self._handler is not None

    async def start(self) -> None:
        """Open the Socket Mode connection."""
        if self._handler is not None:
            logger.warning("Slack adapter already running")
            return

        handler = AsyncSocketModeHandler(self._app, self._app_token.get_secret_value())
        logger.info("Connecting Slack adapter via Socket Mode")
        try:
            await handler.connect_async()
        except Exception as e:
            logger.error("Failed to connect Slack adapter", extra={"error": str(e)})
            raise
        self._handler = handler
        logger.info("Slack adapter connected")

    async def stop(self) -> None:
        """Close the Socket Mode connection."""
        if self._handler is None:
            return

        await self._handler.close_async()
        self._handler = None
        logger.info("Slack adapter stopped")

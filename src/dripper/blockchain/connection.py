"""Shared chain connection for Dripper.

A single ``SubstrateInterface`` handle is created lazily and reused for the
lifetime of the process. It is rebuilt when the underlying websocket reports
that it has been disconnected.
"""

import asyncio
import logging
from collections.abc import Callable

from substrateinterface import SubstrateInterface

from .extensions import AppIdSubstrateInterface

logger = logging.getLogger(__name__)


def _default_factory(url: str, ss58_format: int, app_id: int | None) -> SubstrateInterface:
    if app_id is None:
        return SubstrateInterface(url=url, ss58_format=ss58_format)
    return AppIdSubstrateInterface(url=url, ss58_format=ss58_format, app_id=app_id)


def _is_connected(substrate: SubstrateInterface) -> bool:
    websocket = getattr(substrate, "websocket", None)
    # HTTP endpoints have no persistent socket
    if websocket is None:
        return True
    return bool(websocket.connected)


class ChainConnection:
    """Lazily initialized, reusable connection to the RPC endpoint.

    Parameters
    ----------
    rpc_endpoint : str
        Websocket (or HTTP) RPC endpoint URL.
    ss58_format : int
        Address format of the network.
    app_id : int | None
        Value for the CheckAppId signed extension, on runtimes that have it.
    factory : Callable[[str, int, int | None], SubstrateInterface] | None
        Builds a new handle. Defaults to ``SubstrateInterface``.
    """

    def __init__(
        self,
        rpc_endpoint: str,
        ss58_format: int = 42,
        app_id: int | None = None,
        factory: Callable[[str, int, int | None], SubstrateInterface] | None = None,
    ):
        self._rpc_endpoint = rpc_endpoint
        self._ss58_format = ss58_format
        self._app_id = app_id
        self._factory = factory or _default_factory
        self._substrate: SubstrateInterface | None = None
        self._lock = asyncio.Lock()

    @property
    def rpc_endpoint(self) -> str:
        """The configured RPC endpoint."""
        return self._rpc_endpoint

    @property
    def connected(self) -> bool:
        """Whether a cached handle exists and reports connected."""
        return self._substrate is not None and _is_connected(self._substrate)

    async def get_connection(self) -> SubstrateInterface:
        """Return the shared handle, (re)connecting if needed.

        Returns
        -------
        SubstrateInterface
            A connected handle, shared by every caller.
        """
        if self.connected:
            return self._substrate

        async with self._lock:
            # Another caller may have connected while we waited
            if self.connected:
                return self._substrate

            if self._substrate is None:
                logger.info("Initializing new chain connection", extra={"url": self._rpc_endpoint})
            else:
                logger.info("Chain connection lost, reconnecting", extra={"url": self._rpc_endpoint})

            self._substrate = await asyncio.to_thread(
                self._factory, self._rpc_endpoint, self._ss58_format, self._app_id
            )
            return self._substrate

    async def close(self) -> None:
        """Close the shared handle if one is open."""
        if self._substrate is None:
            return
        substrate, self._substrate = self._substrate, None
        await asyncio.to_thread(substrate.close)
        logger.info("Chain connection closed")

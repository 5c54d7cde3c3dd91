"""Faucet account pool for Dripper.

Holds the primary and backup signing wallets and a periodically refreshed
snapshot of the primary account's free balance. Readers never wait for a
fresh value; the snapshot may be stale or not yet available.
"""

import asyncio
import logging

from dripper.blockchain.client import SubstrateClient, rpc_watchdog
from dripper.blockchain.networks import NetworkData
from dripper.core.wallet import WalletProvider
from dripper.observability.metrics import FAUCET_BALANCE

logger = logging.getLogger(__name__)


class FaucetAccountPool:
    """Signing credentials plus the cached primary balance.

    Parameters
    ----------
    client : SubstrateClient
        Chain client used for balance queries.
    network : NetworkData
        Active network, for decimals and the balance cap.
    primary : WalletProvider | None
        Primary signing wallet. None means the faucet is not ready.
    backup : WalletProvider | None
        Backup signing wallet used when the primary fails.
    poll_interval_seconds : float
        Period of the background balance refresh.
    rpc_timeout_seconds : float
        Delay after which a slow balance query is logged.
    """

    def __init__(
        self,
        client: SubstrateClient,
        network: NetworkData,
        primary: WalletProvider | None,
        backup: WalletProvider | None = None,
        poll_interval_seconds: float = 60.0,
        rpc_timeout_seconds: float = 50.0,
    ):
        self._client = client
        self._network = network
        self._primary = primary
        self._backup = backup
        self._poll_interval = poll_interval_seconds
        self._rpc_timeout = rpc_timeout_seconds
        self._faucet_balance: int | None = None
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def primary(self) -> WalletProvider | None:
        """Primary signing wallet."""
        return self._primary

    @property
    def backup(self) -> WalletProvider | None:
        """Backup signing wallet."""
        return self._backup

    @property
    def is_running(self) -> bool:
        """Check if the balance refresh loop is running."""
        return self._running

    def get_cached_balance(self) -> int | None:
        """Last known primary balance in the smallest unit, without I/O."""
        return self._faucet_balance

    async def refresh_balance(self) -> None:
        """Re-query the primary account balance and swap the snapshot.

        Failures are logged and leave the previous snapshot in place.
        """
        if self._primary is None:
            logger.warning("Account address wasn't initialized yet")
            return

        try:
            balance = await self._client.get_free_balance(self._primary.address)
        except Exception as e:
            logger.error(
                "Faucet balance refresh failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            return

        self._faucet_balance = balance
        FAUCET_BALANCE.set(balance)

    async def get_address_balance(self, address: str) -> int:
        """Get the free balance of an address in whole units.

        Parameters
        ----------
        address : str
            The SS58 address to query.

        Returns
        -------
        int
            Balance truncated to whole units.
        """
        raw = await self._client.get_free_balance(address)
        return raw // (10**self._network.decimals)

    async def is_over_balance_cap(self, address: str) -> bool:
        """Check whether an address holds more than the network's cap.

        Parameters
        ----------
        address : str
            The SS58 address to check.

        Returns
        -------
        bool
            True if the whole-unit balance exceeds the cap.
        """
        return await self.get_address_balance(address) > self._network.balance_cap

    async def get_faucet_balance(self) -> str:
        """Query the primary account's free balance live.

        Returns
        -------
        str
            The raw balance, or ``"0"`` if the query failed.
        """
        if self._primary is None:
            logger.error("An error occurred when querying the balance: account not ready")
            return "0"

        logger.info("Checking faucet balance")
        try:
            async with rpc_watchdog("balance", self._rpc_timeout):
                balance = await self._client.get_free_balance(self._primary.address)
        except Exception as e:
            logger.error(
                "An error occurred when querying the balance",
                extra={"error": str(e)},
                exc_info=True,
            )
            return "0"
        return str(balance)

    async def start(self) -> None:
        """Fetch the balance once, then keep refreshing it in the background."""
        if self._running:
            logger.warning("Balance refresh already running")
            return

        await self.refresh_balance()
        logger.info("Fetched faucet balance", extra={"balance": self._faucet_balance})

        self._running = True
        self._task = asyncio.create_task(self._refresh_loop())
        logger.info(
            "Balance refresh started",
            extra={"interval_seconds": self._poll_interval},
        )

    async def stop(self) -> None:
        """Stop the balance refresh loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Balance refresh stopped")

    async def _refresh_loop(self) -> None:
        """Refresh the cached balance on a fixed period."""
        while self._running:
            await asyncio.sleep(self._poll_interval)
            try:
                await self.refresh_balance()
            except Exception as e:
                logger.error(
                    "Error in balance refresh loop",
                    extra={"error": str(e)},
                    exc_info=True,
                )

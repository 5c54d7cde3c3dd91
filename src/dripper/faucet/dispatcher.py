"""Transfer dispatcher for Dripper.

Submits a drip through escalating tiers:
1. Primary account, node-assigned nonce
2. Backup account, node-assigned nonce
3. Backup account, nonce re-queried explicitly
4. Queue the address; once the queue holds more than the batch threshold,
   a random sample is paid out in one ``Utility.batch`` from the primary

Tiers are escalation steps, not retries; none runs more than once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from dripper.blockchain.client import SubstrateClient, rpc_watchdog
from dripper.blockchain.networks import NetworkData, format_amount
from dripper.observability.metrics import TRANSFER_TIERS

from .accounts import FaucetAccountPool
from .retry_queue import RetryQueueStore

logger = logging.getLogger(__name__)


class DripError(str, Enum):
    """Reasons a drip request can fail."""

    CAPTCHA_INVALID = "captcha_invalid"
    PARACHAIN_INVALID = "parachain_invalid"
    QUOTA_EXCEEDED = "quota_exceeded"
    BALANCE_CAP_EXCEEDED = "balance_cap_exceeded"
    INSUFFICIENT_FAUCET_BALANCE = "insufficient_faucet_balance"
    ACCOUNT_NOT_READY = "account_not_ready"
    TRANSFER_FAILED = "transfer_failed"

    @property
    def message(self) -> str:
        """Default user-facing message."""
        return _ERROR_MESSAGES[self]


_ERROR_MESSAGES = {
    DripError.CAPTCHA_INVALID: "Captcha validation was unsuccessful",
    DripError.PARACHAIN_INVALID: "Parachain invalid. Be sure to set a value between 1000 and 9999",
    DripError.QUOTA_EXCEEDED: "Requester has reached their daily quota. Only request once per day.",
    DripError.BALANCE_CAP_EXCEEDED: "Requester's balance is over the faucet's balance cap",
    DripError.INSUFFICIENT_FAUCET_BALANCE: "Faucet balance is too low for this drip",
    DripError.ACCOUNT_NOT_READY: "Faucet account is not ready yet",
    DripError.TRANSFER_FAILED: "An error occurred when sending tokens",
}


@dataclass
class DripResponse:
    """Outcome of a drip: exactly one of ``tx_hash`` and ``error`` is set."""

    tx_hash: str | None = None
    error: str | None = None
    error_kind: DripError | None = None

    @classmethod
    def success(cls, tx_hash: str) -> "DripResponse":
        return cls(tx_hash=tx_hash)

    @classmethod
    def failure(cls, kind: DripError, message: str | None = None) -> "DripResponse":
        return cls(error=message or kind.message, error_kind=kind)

    @property
    def ok(self) -> bool:
        return self.tx_hash is not None

    def to_dict(self) -> dict:
        """Convert to the JSON wire shape."""
        if self.ok:
            return {"hash": self.tx_hash}
        return {"error": self.error}


@dataclass
class ReclaimOutcome:
    """Result of one best-effort pass over the retry queue."""

    queued: bool
    queue_size: int
    batch_addresses: list[str] = field(default_factory=list)
    tx_hash: str | None = None
    error: str | None = None

    @property
    def batched(self) -> bool:
        """Whether a batch extrinsic was submitted."""
        return self.tx_hash is not None


class TransferDispatcher:
    """Submits transfers through the tiered fallback protocol.

    Parameters
    ----------
    client : SubstrateClient
        Chain client used for signing and submission.
    accounts : FaucetAccountPool
        Primary and backup credentials and the cached faucet balance.
    retry_queue : RetryQueueStore
        Queue of addresses awaiting a batch.
    network : NetworkData
        Active network, used for amount formatting.
    batch_threshold : int
        Queue size that must be exceeded before a batch is sent; also the
        number of addresses drained per batch.
    settle_seconds : float
        Pause after submission before the dispatcher returns.
    rpc_timeout_seconds : float
        Delay after which a slow drip is logged.
    """

    def __init__(
        self,
        client: SubstrateClient,
        accounts: FaucetAccountPool,
        retry_queue: RetryQueueStore,
        network: NetworkData,
        batch_threshold: int = 20,
        settle_seconds: float = 20.0,
        rpc_timeout_seconds: float = 50.0,
    ):
        self._client = client
        self._accounts = accounts
        self._retry_queue = retry_queue
        self._network = network
        self._batch_threshold = batch_threshold
        self._settle_seconds = settle_seconds
        self._rpc_timeout = rpc_timeout_seconds
        self._background: set[asyncio.Task] = set()

    async def send_tokens(
        self,
        address: str,
        amount: int,
        parachain_id: str | None = None,
    ) -> DripResponse:
        """Send ``amount`` to ``address``, escalating through the tiers.

        Parameters
        ----------
        address : str
            Recipient SS58 address.
        amount : int
            Amount in the smallest unit.
        parachain_id : str | None
            Target parachain, recorded in logs only.

        Returns
        -------
        DripResponse
            The extrinsic hash, or an error message.

        Notes
        -----
        When tiers 1 to 3 fail the address is queued for a batch. The request
        succeeds with the batch hash only if a batch was sent and it included
        ``address``; a queued but unsent address, or a batch that drained
        other addresses, ends in ``DripError.TRANSFER_FAILED``.
        """
        if self._accounts.primary is None:
            logger.error("An error occurred when sending tokens: account not ready")
            return DripResponse.failure(DripError.ACCOUNT_NOT_READY)

        faucet_balance = self._accounts.get_cached_balance()
        if faucet_balance is not None and amount >= faucet_balance:
            currency = self._network.currency
            message = (
                f"Can't send {format_amount(amount, self._network.decimals)} {currency}s, "
                f"as balance is only {format_amount(faucet_balance, self._network.decimals)} "
                f"{currency}s."
            )
            logger.error("An error occurred when sending tokens", extra={"error": message})
            return DripResponse.failure(DripError.INSUFFICIENT_FAUCET_BALANCE, message)

        logger.info(
            "Sending tokens",
            extra={"to": address, "amount": str(amount), "parachain_id": parachain_id},
        )
        async with rpc_watchdog("drip", self._rpc_timeout):
            tx_hash = await self._submit(address, amount)
            await asyncio.sleep(self._settle_seconds)

        if tx_hash is None:
            logger.error("Token transfer failed", extra={"to": address, "amount": str(amount)})
            return DripResponse.failure(DripError.TRANSFER_FAILED)

        self._schedule_balance_refresh()
        return DripResponse.success(tx_hash)

    async def _submit(self, address: str, amount: int) -> str | None:
        """Run tiers 1 to 4; return a hash or None if every tier failed."""
        primary = self._accounts.primary
        try:
            tx_hash = await self._client.transfer(primary.get_keypair(), address, amount)
            self._record_tier(1, success=True)
            return tx_hash
        except Exception as e:
            self._record_tier(1, success=False)
            logger.warning(
                "First try failed, retrying with backup",
                extra={"tier": 1, "to": address, "error": str(e)},
            )

        backup = self._accounts.backup
        if backup is not None:
            try:
                tx_hash = await self._client.transfer(backup.get_keypair(), address, amount)
                self._record_tier(2, success=True)
                return tx_hash
            except Exception as e:
                self._record_tier(2, success=False)
                logger.error(
                    "Backup failed, retrying with explicit nonce",
                    extra={"tier": 2, "to": address, "error": str(e)},
                )

            try:
                nonce = await self._client.get_next_nonce(backup.address)
                tx_hash = await self._client.transfer(
                    backup.get_keypair(), address, amount, nonce=nonce
                )
                self._record_tier(3, success=True)
                return tx_hash
            except Exception as e:
                self._record_tier(3, success=False)
                logger.error(
                    "Explicit nonce retry failed, sending to batch",
                    extra={"tier": 3, "to": address, "error": str(e)},
                )
        else:
            logger.warning("No backup account configured, sending to batch", extra={"tier": 1})

        outcome = await self.reclaim(address, amount)
        logger.info(
            "Batch reclaim finished",
            extra={
                "tier": 4,
                "queued": outcome.queued,
                "queue_size": outcome.queue_size,
                "batched": outcome.batched,
                "tx_hash": outcome.tx_hash,
                "error": outcome.error,
            },
        )
        if outcome.batched and address in outcome.batch_addresses:
            return outcome.tx_hash
        return None

    async def reclaim(self, address: str, amount: int) -> ReclaimOutcome:
        """Queue an address and flush a batch once the queue is large enough.

        Every drained address receives the current ``amount``. Sampled
        addresses are removed whether or not the batch went through. This
        never raises; failures are reported in the outcome.

        Parameters
        ----------
        address : str
            Address whose transfer failed.
        amount : int
            Amount paid to every address in the batch.

        Returns
        -------
        ReclaimOutcome
            What happened to the queue and the batch.
        """
        try:
            await self._retry_queue.add(address)
            size = await self._retry_queue.size()
        except Exception as e:
            self._record_tier(4, success=False)
            logger.error("An error occurred when queueing tokens", extra={"error": str(e)})
            return ReclaimOutcome(queued=False, queue_size=0, error=str(e))

        if size <= self._batch_threshold:
            return ReclaimOutcome(queued=True, queue_size=size)

        primary = self._accounts.primary
        if primary is None:
            return ReclaimOutcome(queued=True, queue_size=size, error="account not ready")

        batch: list[str] = []
        try:
            batch = await self._retry_queue.sample(self._batch_threshold)
            tx_hash = await self._client.batch_transfer(primary.get_keypair(), batch, amount)
        except Exception as e:
            self._record_tier(4, success=False)
            logger.error("An error occurred when sending batch", extra={"error": str(e)})
            return ReclaimOutcome(queued=True, queue_size=size, batch_addresses=batch, error=str(e))
        finally:
            await self._drop_from_queue(batch)

        self._record_tier(4, success=True)
        return ReclaimOutcome(queued=True, queue_size=size, batch_addresses=batch, tx_hash=tx_hash)

    async def _drop_from_queue(self, addresses: list[str]) -> None:
        for queued in addresses:
            try:
                await self._retry_queue.remove(queued)
            except Exception as e:
                logger.error(
                    "Failed to remove address from retry queue",
                    extra={"address": queued, "error": str(e)},
                )

    def _record_tier(self, tier: int, success: bool) -> None:
        TRANSFER_TIERS.labels(tier=str(tier), outcome="success" if success else "failure").inc()

    def _schedule_balance_refresh(self) -> None:
        task = asyncio.create_task(self._accounts.refresh_balance())
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        if exc := task.exception():
            logger.error("Background balance refresh failed", extra={"error": str(exc)})
        else:
            logger.info("Refreshed the faucet balance")

    async def wait_for_background(self) -> None:
        """Wait for pending balance refreshes to finish."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

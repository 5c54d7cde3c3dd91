"""Drip request handler for Dripper.

Runs the validation chain, then hands the transfer to the dispatcher:
- Captcha (external requests only)
- Parachain ID format
- Daily quota and balance cap, checked concurrently and both skipped for
  privileged internal requesters
"""

import asyncio
import logging
from dataclasses import dataclass

from dripper.observability.metrics import REQUESTS, SUCCESSFUL_REQUESTS

from .accounts import FaucetAccountPool
from .captcha import Recaptcha
from .dispatcher import DripError, DripResponse, TransferDispatcher
from .privilege import PrivilegeList
from .quota import QuotaKey, QuotaStore

logger = logging.getLogger(__name__)


def validate_parachain_id(parachain_id: str | None) -> bool:
    """Check an optional parachain ID.

    Empty or absent is valid; otherwise it must be plain ASCII digits in
    1000..9999.
    """
    if not parachain_id:
        return True
    if not (parachain_id.isascii() and parachain_id.isdigit()):
        return False
    return 999 < int(parachain_id) < 10000


@dataclass(frozen=True)
class ExternalDripRequest:
    """Unauthenticated request, guarded by a captcha."""

    address: str
    amount: int
    recaptcha: str
    parachain_id: str | None = None

    @property
    def source(self) -> str:
        return "external"

    @property
    def quota_key(self) -> QuotaKey:
        return QuotaKey(address=self.address)


@dataclass(frozen=True)
class InternalDripRequest:
    """Request relayed by a trusted bot on behalf of a known requester."""

    address: str
    amount: int
    requester_id: str
    parachain_id: str | None = None

    @property
    def source(self) -> str:
        return "internal"

    @property
    def quota_key(self) -> QuotaKey:
        return QuotaKey(address=self.address, requester_id=self.requester_id)


DripRequest = ExternalDripRequest | InternalDripRequest


class DripRequestHandler:
    """Validates drip requests and dispatches the transfer.

    Parameters
    ----------
    dispatcher : TransferDispatcher
        Executes the tiered transfer.
    accounts : FaucetAccountPool
        Answers the balance-cap question.
    quota : QuotaStore
        Daily drip bookkeeping.
    captcha : Recaptcha
        Captcha collaborator for external requests.
    privileges : PrivilegeList
        Allow-list of internal requesters exempt from limits.
    """

    def __init__(
        self,
        dispatcher: TransferDispatcher,
        accounts: FaucetAccountPool,
        quota: QuotaStore,
        captcha: Recaptcha,
        privileges: PrivilegeList,
    ):
        self._dispatcher = dispatcher
        self._accounts = accounts
        self._quota = quota
        self._captcha = captcha
        self._privileges = privileges
        self._post_commit: set[asyncio.Task] = set()

    async def handle_request(self, request: DripRequest) -> DripResponse:
        """Handle a single drip request.

        Parameters
        ----------
        request : DripRequest
            External or internal request.

        Returns
        -------
        DripResponse
            The transaction hash, or the reason the drip was refused.
        """
        REQUESTS.labels(source=request.source).inc()

        if isinstance(request, ExternalDripRequest) and not await self._captcha.validate(
            request.recaptcha
        ):
            return DripResponse.failure(DripError.CAPTCHA_INVALID)

        if not validate_parachain_id(request.parachain_id):
            return DripResponse.failure(DripError.PARACHAIN_INVALID)

        privileged = isinstance(request, InternalDripRequest) and self._privileges.is_privileged(
            request.requester_id
        )

        # Both lookups always run so the balance path stays warm
        dripped_today, over_cap = await asyncio.gather(
            self._quota.has_dripped_today(request.quota_key),
            self._accounts.is_over_balance_cap(request.address),
            return_exceptions=True,
        )
        for check in (dripped_today, over_cap):
            if isinstance(check, Exception):
                logger.error(
                    "Drip eligibility check failed",
                    extra={"address": request.address, "error": str(check)},
                )
                return DripResponse.failure(DripError.TRANSFER_FAILED)

        if not privileged:
            if dripped_today:
                return DripResponse.failure(DripError.QUOTA_EXCEEDED)
            if over_cap:
                return DripResponse.failure(DripError.BALANCE_CAP_EXCEEDED)
        else:
            logger.info(
                "Privileged requester, skipping quota and balance cap",
                extra={"requester_id": request.requester_id},
            )

        result = await self._dispatcher.send_tokens(
            request.address, request.amount, request.parachain_id
        )

        if result.ok:
            SUCCESSFUL_REQUESTS.labels(source=request.source).inc()
            self._schedule_record(request.quota_key)

        return result

    def _schedule_record(self, key: QuotaKey) -> None:
        """Persist the drip after the response is decided."""
        task = asyncio.create_task(self._quota.record_drip(key))
        self._post_commit.add(task)
        task.add_done_callback(self._on_record_done)

    def _on_record_done(self, task: asyncio.Task) -> None:
        self._post_commit.discard(task)
        if task.cancelled():
            return
        if exc := task.exception():
            logger.error("Failed to save drip", extra={"error": str(exc)})

    async def wait_for_background(self) -> None:
        """Wait for pending quota writes to finish."""
        if self._post_commit:
            await asyncio.gather(*self._post_commit, return_exceptions=True)

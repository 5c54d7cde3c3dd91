"""Faucet components for Dripper."""

from .accounts import FaucetAccountPool
from .captcha import Recaptcha
from .dispatcher import DripError, DripResponse, ReclaimOutcome, TransferDispatcher
from .handler import (
    DripRequest,
    DripRequestHandler,
    ExternalDripRequest,
    InternalDripRequest,
    validate_parachain_id,
)
from .privilege import PrivilegeList
from .quota import QuotaKey, QuotaStore
from .retry_queue import RetryQueueStore

__all__ = [
    "DripError",
    "DripRequest",
    "DripRequestHandler",
    "DripResponse",
    "ExternalDripRequest",
    "FaucetAccountPool",
    "InternalDripRequest",
    "PrivilegeList",
    "QuotaKey",
    "QuotaStore",
    "Recaptcha",
    "ReclaimOutcome",
    "RetryQueueStore",
    "TransferDispatcher",
    "validate_parachain_id",
]

"""Observability module for Dripper."""

from .health import (
    ChainConnectionCheck,
    FaucetAccountCheck,
    HealthCheck,
    HealthServer,
    HealthStatus,
)
from .logging import clear_request_id, configure_logging, get_logger, set_request_id
from .metrics import (
    FAUCET_BALANCE,
    REQUEST_DURATION,
    REQUESTS,
    RETRY_QUEUE_SIZE,
    SUCCESSFUL_REQUESTS,
    TRANSFER_TIERS,
)

__all__ = [
    # Health
    "ChainConnectionCheck",
    "FaucetAccountCheck",
    "HealthCheck",
    "HealthServer",
    "HealthStatus",
    # Logging
    "clear_request_id",
    "configure_logging",
    "get_logger",
    "set_request_id",
    # Metrics
    "FAUCET_BALANCE",
    "REQUEST_DURATION",
    "REQUESTS",
    "RETRY_QUEUE_SIZE",
    "SUCCESSFUL_REQUESTS",
    "TRANSFER_TIERS",
]

"""Prometheus metrics for Dripper.

Metrics:
- dripper_requests_total: Counter of drip requests by source
- dripper_successful_requests_total: Counter of successful drips by source
- dripper_transfer_tier_total: Counter of submission attempts by tier and outcome
- dripper_faucet_balance: Gauge of the cached faucet balance
- dripper_retry_queue_size: Gauge of addresses waiting for a batch
- dripper_request_duration_seconds: Histogram of request duration
"""

from prometheus_client import Counter, Gauge, Histogram

# Counters
REQUESTS = Counter(
    "dripper_requests_total",
    "Total number of drip requests",
    ["source"],
)

SUCCESSFUL_REQUESTS = Counter(
    "dripper_successful_requests_total",
    "Total number of successful drip requests",
    ["source"],
)

TRANSFER_TIERS = Counter(
    "dripper_transfer_tier_total",
    "Transfer submission attempts by escalation tier",
    ["tier", "outcome"],
)

# Gauges
FAUCET_BALANCE = Gauge(
    "dripper_faucet_balance",
    "Cached free balance of the primary faucet account (smallest unit)",
)

RETRY_QUEUE_SIZE = Gauge(
    "dripper_retry_queue_size",
    "Addresses waiting in the batch retry queue",
)

# Histograms
REQUEST_DURATION = Histogram(
    "dripper_request_duration_seconds",
    "Drip request processing duration",
    ["source"],
    buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 20.0, 30.0, 60.0),
)

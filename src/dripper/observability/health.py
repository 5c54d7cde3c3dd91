"""HTTP server and health checks for Dripper.

Endpoints:
- /health: Liveness probe (200 if process is alive)
- /ready: Readiness probe (200 if the faucet can serve drips)
- /metrics: Prometheus metrics endpoint

Drip routes are registered on the same application by ``dripper.api``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from aiohttp import web
from prometheus_client import REGISTRY, generate_latest

if TYPE_CHECKING:
    from dripper.blockchain.connection import ChainConnection
    from dripper.faucet.accounts import FaucetAccountPool

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """Health check status values."""

    OK = "ok"
    ERROR = "error"
    NOT_READY = "not_ready"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str | None = None


@dataclass
class HealthResult:
    """Combined health check result."""

    status: HealthStatus
    checks: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        result = {"status": self.status.value}
        if self.checks:
            result["checks"] = self.checks
        return result


class HealthCheck(ABC):
    """Abstract base class for health checks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the health check."""
        ...

    @abstractmethod
    async def check(self) -> CheckResult:
        """Perform the health check."""
        ...


class ChainConnectionCheck(HealthCheck):
    """Ready once the shared chain connection is up."""

    def __init__(self, connection: "ChainConnection"):
        self._connection = connection

    @property
    def name(self) -> str:
        return "chain"

    async def check(self) -> CheckResult:
        if self._connection.connected:
            return CheckResult(name=self.name, status=HealthStatus.OK)
        return CheckResult(name=self.name, status=HealthStatus.NOT_READY, message="disconnected")


class FaucetAccountCheck(HealthCheck):
    """Ready once the primary account exists and its balance is known."""

    def __init__(self, accounts: "FaucetAccountPool"):
        self._accounts = accounts

    @property
    def name(self) -> str:
        return "faucet_account"

    async def check(self) -> CheckResult:
        if self._accounts.primary is None:
            return CheckResult(
                name=self.name, status=HealthStatus.NOT_READY, message="account not configured"
            )
        if self._accounts.get_cached_balance() is None:
            return CheckResult(
                name=self.name, status=HealthStatus.NOT_READY, message="balance unknown"
            )
        return CheckResult(name=self.name, status=HealthStatus.OK)


class HealthServer:
    """HTTP server for health, metrics and drip endpoints.

    Parameters
    ----------
    host : str
        Host to bind to.
    port : int
        Port to bind to.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8080):  # noqa: S104
        self._host = host
        self._port = port
        self._checks: list[HealthCheck] = []
        self._app = web.Application()
        self._app.router.add_get("/health", self._handle_health)
        self._app.router.add_get("/ready", self._handle_ready)
        self._app.router.add_get("/metrics", self._handle_metrics)
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    @property
    def app(self) -> web.Application:
        """The aiohttp application, for registering more routes before start."""
        return self._app

    def add_check(self, check: HealthCheck) -> None:
        """Add a readiness check."""
        self._checks.append(check)

    async def start(self) -> None:
        """Start serving."""
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        await self._site.start()

        logger.info(
            "HTTP server started",
            extra={"host": self._host, "port": self._port},
        )

    async def stop(self) -> None:
        """Stop serving."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("HTTP server stopped")

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle /health endpoint (liveness probe)."""
        return web.json_response({"status": "ok"})

    async def _handle_ready(self, _request: web.Request) -> web.Response:
        """Handle /ready endpoint (readiness probe)."""
        result = await self._check_readiness()

        status_code = 200 if result.status == HealthStatus.OK else 503
        return web.json_response(result.to_dict(), status=status_code)

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle /metrics endpoint (Prometheus)."""
        return web.Response(
            body=generate_latest(REGISTRY),
            content_type="text/plain",
            charset="utf-8",
        )

    async def _check_readiness(self) -> HealthResult:
        """Run all readiness checks."""
        if not self._checks:
            return HealthResult(status=HealthStatus.OK)

        checks: dict[str, str] = {}
        all_ok = True

        for check in self._checks:
            try:
                result = await check.check()
            except Exception as e:
                logger.exception("Health check failed", extra={"check": check.name})
                checks[check.name] = f"error: {type(e).__name__}: {e}"
                all_ok = False
                continue

            if result.status == HealthStatus.OK:
                checks[result.name] = "ok"
            else:
                checks[result.name] = result.message or "error"
                all_ok = False

        return HealthResult(
            status=HealthStatus.OK if all_ok else HealthStatus.NOT_READY,
            checks=checks,
        )

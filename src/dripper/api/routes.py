"""HTTP drip endpoints for Dripper.

Endpoints:
- POST /drip/web: External request, body ``{address, amount?, parachain_id?, recaptcha}``
- POST /drip/bot: Internal request from a trusted relay, body
  ``{address, amount?, parachain_id?, sender}``. Requires
  ``Authorization: Bearer <relay secret>``; refused when no secret is set.
- GET /balance: Live faucet balance in the smallest unit
"""

import hmac
import logging
import time
from typing import Any

from aiohttp import web
from pydantic import SecretStr
from substrateinterface.utils.ss58 import is_valid_ss58_address

from dripper.faucet.accounts import FaucetAccountPool
from dripper.faucet.handler import (
    DripRequest,
    DripRequestHandler,
    ExternalDripRequest,
    InternalDripRequest,
)
from dripper.observability.logging import clear_request_id, set_request_id
from dripper.observability.metrics import REQUEST_DURATION

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class BadRequest(ValueError):
    """The request body cannot be turned into a drip request."""


def _bad_request(message: str) -> web.Response:
    return web.json_response({"error": message}, status=400)


def _parse_amount(raw: Any, default_amount: int) -> int:
    """Amounts are whole smallest-unit integers no larger than the drip amount."""
    if raw is None or raw == "":
        return default_amount
    if isinstance(raw, str):
        if not (raw.isascii() and raw.isdigit()):
            raise BadRequest("Amount must be an integer")
        amount = int(raw)
    elif isinstance(raw, int) and not isinstance(raw, bool):
        amount = raw
    else:
        raise BadRequest("Amount must be an integer")
    if amount <= 0:
        raise BadRequest("Amount must be positive")
    if amount > default_amount:
        raise BadRequest(f"Amount must not exceed {default_amount}")
    return amount


def _parse_common(body: Any, default_amount: int) -> tuple[str, int, str | None]:
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")

    address = body.get("address")
    if not address or not isinstance(address, str):
        raise BadRequest("Missing parameter: 'address'")
    if not is_valid_ss58_address(address):
        raise BadRequest(f"Invalid address: {address}")

    parachain_id = body.get("parachain_id")
    if parachain_id is not None:
        parachain_id = str(parachain_id)

    return address, _parse_amount(body.get("amount"), default_amount), parachain_id


def parse_external_request(body: Any, default_amount: int) -> ExternalDripRequest:
    """Build an external drip request from a JSON body.

    Raises
    ------
    BadRequest
        If a required field is missing or malformed.
    """
    address, amount, parachain_id = _parse_common(body, default_amount)
    recaptcha = body.get("recaptcha")
    if not recaptcha or not isinstance(recaptcha, str):
        raise BadRequest("Missing parameter: 'recaptcha'")
    return ExternalDripRequest(
        address=address, amount=amount, recaptcha=recaptcha, parachain_id=parachain_id
    )


def parse_internal_request(body: Any, default_amount: int) -> InternalDripRequest:
    """Build an internal drip request from a JSON body.

    Raises
    ------
    BadRequest
        If a required field is missing or malformed.
    """
    address, amount, parachain_id = _parse_common(body, default_amount)
    sender = body.get("sender")
    if not sender or not isinstance(sender, str):
        raise BadRequest("Missing parameter: 'sender'")
    return InternalDripRequest(
        address=address, amount=amount, requester_id=sender, parachain_id=parachain_id
    )


def is_authorized_relay(request: web.Request, relay_secret: SecretStr | None) -> bool:
    """Check the bearer token of a bot relay request.

    Parameters
    ----------
    request : web.Request
        Incoming request.
    relay_secret : SecretStr | None
        Shared secret of the relay. Nothing is authorized when None.

    Returns
    -------
    bool
        Whether the request carries the shared secret.
    """
    if relay_secret is None:
        return False
    header = request.headers.get("Authorization", "")
    if not header.startswith(BEARER_PREFIX):
        return False
    presented = header[len(BEARER_PREFIX) :].encode()
    return hmac.compare_digest(presented, relay_secret.get_secret_value().encode())


def register_routes(
    app: web.Application,
    handler: DripRequestHandler,
    accounts: FaucetAccountPool,
    default_amount: int,
    relay_secret: SecretStr | None = None,
) -> None:
    """Register the drip endpoints on an aiohttp application.

    Parameters
    ----------
    app : web.Application
        Application to extend.
    handler : DripRequestHandler
        Handles validated drip requests.
    accounts : FaucetAccountPool
        Source of the faucet balance.
    default_amount : int
        Drip amount in the smallest unit when the body omits one, and the
        largest amount a body may ask for.
    relay_secret : SecretStr | None
        Bearer token required on ``/drip/bot``. The route refuses every
        request when None.
    """

    async def drip(request: web.Request, parse) -> web.Response:
        request_id = set_request_id()
        try:
            try:
                body = await request.json()
                drip_request: DripRequest = parse(body, default_amount)
            except BadRequest as e:
                return _bad_request(str(e))
            except ValueError:
                return _bad_request("Request body must be valid JSON")

            logger.info(
                "Drip requested",
                extra={
                    "source": drip_request.source,
                    "address": drip_request.address,
                    "amount": str(drip_request.amount),
                    "request_id": request_id,
                },
            )
            started = time.monotonic()
            result = await handler.handle_request(drip_request)
            REQUEST_DURATION.labels(source=drip_request.source).observe(
                time.monotonic() - started
            )
            return web.json_response(result.to_dict())
        finally:
            clear_request_id()

    async def handle_drip_web(request: web.Request) -> web.Response:
        return await drip(request, parse_external_request)

    async def handle_drip_bot(request: web.Request) -> web.Response:
        if not is_authorized_relay(request, relay_secret):
            logger.warning("Unauthorized bot drip request", extra={"remote": request.remote})
            return web.json_response({"error": "Unauthorized"}, status=401)
        return await drip(request, parse_internal_request)

    async def handle_balance(_request: web.Request) -> web.Response:
        return web.json_response({"balance": await accounts.get_faucet_balance()})

    app.router.add_post("/drip/web", handle_drip_web)
    app.router.add_post("/drip/bot", handle_drip_bot)
    app.router.add_get("/balance", handle_balance)

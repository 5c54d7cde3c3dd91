"""Tests for the HTTP drip endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer
from pydantic import SecretStr

from dripper.api.routes import (
    BadRequest,
    parse_external_request,
    parse_internal_request,
    register_routes,
)
from dripper.faucet.dispatcher import DripError, DripResponse
from dripper.faucet.handler import ExternalDripRequest, InternalDripRequest

USER = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
DEFAULT = 10**18
RELAY_SECRET = "relay-secret"
RELAY_HEADERS = {"Authorization": f"Bearer {RELAY_SECRET}"}


class TestParseRequests:
    """Tests for request body parsing."""

    def test_external_defaults(self):
        """Amount defaults and parachain is optional."""
        request = parse_external_request({"address": USER, "recaptcha": "tok"}, DEFAULT)

        assert request == ExternalDripRequest(address=USER, amount=DEFAULT, recaptcha="tok")

    def test_external_full(self):
        """Explicit amount and numeric parachain are accepted."""
        request = parse_external_request(
            {"address": USER, "recaptcha": "tok", "amount": "5", "parachain_id": 2000},
            DEFAULT,
        )

        assert request.amount == 5
        assert request.parachain_id == "2000"

    def test_internal(self):
        """Internal bodies carry the requester as sender."""
        request = parse_internal_request({"address": USER, "sender": "U123"}, DEFAULT)

        assert request == InternalDripRequest(address=USER, amount=DEFAULT, requester_id="U123")

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ({"recaptcha": "tok"}, "Missing parameter: 'address'"),
            ({"address": "not-an-address", "recaptcha": "tok"}, "Invalid address"),
            ({"address": USER}, "Missing parameter: 'recaptcha'"),
            ({"address": USER, "recaptcha": "tok", "amount": "lots"}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": -1}, "positive"),
            ({"address": USER, "recaptcha": "tok", "amount": True}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": 1.9}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": "1.9"}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": "1_000"}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": " 5"}, "integer"),
            ({"address": USER, "recaptcha": "tok", "amount": DEFAULT + 1}, "exceed"),
            ({"address": USER, "recaptcha": "tok", "amount": str(DEFAULT * 2)}, "exceed"),
            (["not", "an", "object"], "JSON object"),
        ],
    )
    def test_external_rejects(self, body, message):
        """Malformed bodies raise BadRequest."""
        with pytest.raises(BadRequest, match=message):
            parse_external_request(body, DEFAULT)

    def test_amount_up_to_drip_amount(self):
        """The drip amount itself is the largest accepted request."""
        request = parse_external_request(
            {"address": USER, "recaptcha": "tok", "amount": DEFAULT}, DEFAULT
        )

        assert request.amount == DEFAULT

    def test_internal_requires_sender(self):
        """Internal bodies without a sender are rejected."""
        with pytest.raises(BadRequest, match="sender"):
            parse_internal_request({"address": USER}, DEFAULT)


class TestRoutes:
    """Tests for the registered endpoints."""

    @pytest.fixture
    def handler(self):
        handler = MagicMock()
        handler.handle_request = AsyncMock(return_value=DripResponse.success("0xhash"))
        return handler

    @pytest.fixture
    def accounts(self):
        accounts = MagicMock()
        accounts.get_faucet_balance = AsyncMock(return_value="123000")
        return accounts

    @pytest.fixture
    async def api_client(self, handler, accounts):
        app = web.Application()
        register_routes(app, handler, accounts, DEFAULT, relay_secret=SecretStr(RELAY_SECRET))
        client = TestClient(TestServer(app))
        await client.start_server()
        yield client
        await client.close()

    @pytest.mark.asyncio
    async def test_drip_web_success(self, api_client, handler):
        """POST /drip/web returns the hash."""
        resp = await api_client.post("/drip/web", json={"address": USER, "recaptcha": "tok"})

        assert resp.status == 200
        assert await resp.json() == {"hash": "0xhash"}
        request = handler.handle_request.await_args.args[0]
        assert isinstance(request, ExternalDripRequest)
        assert request.amount == DEFAULT

    @pytest.mark.asyncio
    async def test_drip_bot_success(self, api_client, handler):
        """POST /drip/bot relays an internal request."""
        resp = await api_client.post(
            "/drip/bot", json={"address": USER, "sender": "U123"}, headers=RELAY_HEADERS
        )

        assert resp.status == 200
        request = handler.handle_request.await_args.args[0]
        assert isinstance(request, InternalDripRequest)
        assert request.requester_id == "U123"

    @pytest.mark.asyncio
    async def test_drip_refused(self, api_client, handler):
        """Refusals are returned as an error body."""
        handler.handle_request.return_value = DripResponse.failure(DripError.CAPTCHA_INVALID)

        resp = await api_client.post("/drip/web", json={"address": USER, "recaptcha": "tok"})

        assert resp.status == 200
        assert await resp.json() == {"error": "Captcha validation was unsuccessful"}

    @pytest.mark.asyncio
    async def test_bad_body(self, api_client, handler):
        """Malformed requests return 400 without reaching the handler."""
        resp = await api_client.post("/drip/web", json={"address": USER})

        assert resp.status == 400
        assert await resp.json() == {"error": "Missing parameter: 'recaptcha'"}
        handler.handle_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_json(self, api_client, handler):
        """Non-JSON bodies return 400."""
        resp = await api_client.post("/drip/web", data="{not json")

        assert resp.status == 400
        assert await resp.json() == {"error": "Request body must be valid JSON"}
        handler.handle_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_balance(self, api_client):
        """GET /balance returns the raw faucet balance."""
        resp = await api_client.get("/balance")

        assert resp.status == 200
        assert await resp.json() == {"balance": "123000"}

    @pytest.mark.asyncio
    async def test_drip_web_amount_above_drip_amount(self, api_client, handler):
        """Oversized amounts are refused before the handler."""
        resp = await api_client.post(
            "/drip/web", json={"address": USER, "recaptcha": "tok", "amount": DEFAULT * 10**12}
        )

        assert resp.status == 400
        handler.handle_request.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": "Bearer wrong-secret"},
            {"Authorization": RELAY_SECRET},
            {"Authorization": f"Basic {RELAY_SECRET}"},
        ],
    )
    async def test_drip_bot_requires_relay_secret(self, api_client, handler, headers):
        """Bot requests without the relay secret never reach the handler."""
        resp = await api_client.post(
            "/drip/bot",
            json={"address": USER, "sender": "U-admin", "amount": 10**30},
            headers=headers,
        )

        assert resp.status == 401
        assert await resp.json() == {"error": "Unauthorized"}
        handler.handle_request.assert_not_called()

    @pytest.mark.asyncio
    async def test_drip_bot_disabled_without_secret(self, handler, accounts):
        """Without a configured secret the bot route refuses everything."""
        app = web.Application()
        register_routes(app, handler, accounts, DEFAULT)
        client = TestClient(TestServer(app))
        await client.start_server()
        try:
            resp = await client.post(
                "/drip/bot",
                json={"address": USER, "sender": "U123"},
                headers={"Authorization": "Bearer "},
            )
        finally:
            await client.close()

        assert resp.status == 401
        handler.handle_request.assert_not_called()

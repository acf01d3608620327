"""Tests for the relay HTTP server."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from src.api.server import RelayServer, build_router, create_app
from src.config import Settings
from src.notifications.channels import DeliveryResult
from src.notifications.router import DeliveryRouter

TEST_KEY = "test-key-123"

# -- Helpers -----------------------------------------------------------------


async def _make_client(app):
    """Create a TestClient for the relay app."""
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


@pytest.fixture
def channels(make_channel):
    """Bot, webhook and Telegram stand-ins that all succeed."""
    return {
        "bot": make_channel(DeliveryResult.ok("bot")),
        "webhook": make_channel(DeliveryResult.ok("webhook")),
        "telegram": make_channel(DeliveryResult.ok()),
    }


def _app(channels, **settings_kwargs):
    settings = Settings(**settings_kwargs)
    return create_app(settings, DeliveryRouter(**channels))


def _no_outbound_calls(channels) -> bool:
    return all(ch.send.await_count == 0 for ch in channels.values())


# -- Health check -----------------------------------------------------------


async def test_health_reports_configuration(channels) -> None:
    client = await _make_client(
        _app(
            channels,
            api_key=TEST_KEY,
            discord_webhook_url="https://discord.com/api/webhooks/1/x",
        )
    )
    try:
        resp = await client.get("/")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "running"
        assert data["auth"] is True
        assert data["discord"] == {"bot": True, "webhook": True}
        assert data["telegram"] is False
        assert data["timestamp"].endswith("Z")
    finally:
        await client.close()


async def test_health_needs_no_key(channels) -> None:
    client = await _make_client(_app(channels, api_key=TEST_KEY))
    try:
        resp = await client.get("/")
        assert resp.status == 200
    finally:
        await client.close()


async def test_health_bot_not_ready(channels) -> None:
    channels["bot"].is_ready = False
    client = await _make_client(_app(channels))
    try:
        data = await (await client.get("/")).json()
        assert data["discord"]["bot"] is False
    finally:
        await client.close()


# -- Auth -------------------------------------------------------------------


async def test_no_key_configured_allows_request(channels) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json={"message": "hi"})
        assert resp.status == 200
    finally:
        await client.close()


async def test_rejects_missing_key(channels) -> None:
    client = await _make_client(_app(channels, api_key=TEST_KEY))
    try:
        resp = await client.post("/send", json={"message": "hi"})
        assert resp.status == 401
        data = await resp.json()
        assert data["success"] is False
        assert data["error"] == "API key required"
        assert _no_outbound_calls(channels)
    finally:
        await client.close()


async def test_rejects_wrong_key(channels) -> None:
    client = await _make_client(_app(channels, api_key=TEST_KEY))
    try:
        resp = await client.post(
            "/send", json={"message": "hi"}, headers={"X-API-Key": "wrong"}
        )
        assert resp.status == 403
        data = await resp.json()
        assert data == {"success": False, "error": "Invalid API key"}
        assert _no_outbound_calls(channels)
    finally:
        await client.close()


async def test_key_comparison_is_case_sensitive(channels) -> None:
    client = await _make_client(_app(channels, api_key=TEST_KEY))
    try:
        resp = await client.post(
            "/send", json={"message": "hi"}, headers={"X-API-Key": TEST_KEY.upper()}
        )
        assert resp.status == 403
    finally:
        await client.close()


@pytest.mark.parametrize(
    "headers",
    [{"X-API-Key": TEST_KEY}, {"Authorization": f"Bearer {TEST_KEY}"}],
)
async def test_accepts_valid_key(channels, headers) -> None:
    client = await _make_client(_app(channels, api_key=TEST_KEY))
    try:
        resp = await client.post("/send", json={"message": "hi"}, headers=headers)
        assert resp.status == 200
    finally:
        await client.close()


async def test_undecodable_key_is_rejected(channels) -> None:
    """Header bytes that are not UTF-8 get a 403, not a server error."""
    server = TestServer(_app(channels, api_key=TEST_KEY))
    await server.start_server()
    try:
        body = b'{"message": "hi"}'
        reader, writer = await asyncio.open_connection(server.host, server.port)
        writer.write(
            b"POST /send HTTP/1.1\r\n"
            b"Host: localhost\r\n"
            b"X-API-Key: \xff\xfe\r\n"
            b"Content-Type: application/json\r\n"
            + f"Content-Length: {len(body)}\r\n".encode()
            + b"Connection: close\r\n\r\n"
            + body
        )
        await writer.drain()
        status_line = await reader.readline()
        writer.close()
        await writer.wait_closed()

        assert status_line.split()[1] == b"403"
        assert _no_outbound_calls(channels)
    finally:
        await server.close()


async def test_no_key_configured_warns_every_request(channels, caplog) -> None:
    client = await _make_client(_app(channels))
    try:
        with caplog.at_level(logging.WARNING, logger="src.api.auth"):
            await client.post("/send", json={"message": "one"})
            await client.post("/send", json={"message": "two"})
    finally:
        await client.close()

    warnings = [
        r
        for r in caplog.records
        if r.name == "src.api.auth" and r.levelno == logging.WARNING
    ]
    assert len(warnings) == 2
    assert all("API_KEY not set" in r.getMessage() for r in warnings)


# -- Validation -------------------------------------------------------------


@pytest.mark.parametrize("body", [{}, {"message": ""}, {"message": None}])
async def test_missing_message_returns_400(channels, body) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json=body)
        assert resp.status == 400
        data = await resp.json()
        assert data == {"success": False, "error": "Message is required"}
        assert _no_outbound_calls(channels)
    finally:
        await client.close()


async def test_invalid_json_returns_400(channels) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post(
            "/send", data=b"not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert _no_outbound_calls(channels)
    finally:
        await client.close()


async def test_json_array_body_returns_400(channels) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json=["hi"])
        assert resp.status == 400
    finally:
        await client.close()


# -- Delivery ---------------------------------------------------------------


async def test_send_via_bot(channels) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json={"message": "hi", "username": "ci"})
        assert resp.status == 200
        data = await resp.json()
        assert data["success"] is True
        assert data["results"] == {
            "discord": {"success": True, "method": "bot"},
            "telegram": None,
        }
        assert data["timestamp"].endswith("Z")
        channels["webhook"].send.assert_not_awaited()
    finally:
        await client.close()


async def test_form_encoded_body(channels) -> None:
    client = await _make_client(_app(channels))
    try:
        resp = await client.post(
            "/send",
            data={"message": "from curl", "send_telegram": "true", "use_bot": "false"},
        )
        assert resp.status == 200
        data = await resp.json()
        assert data["results"]["discord"]["method"] == "webhook"
        assert data["results"]["telegram"] == {"success": True}
        channels["bot"].send.assert_not_awaited()
    finally:
        await client.close()


async def test_partial_success_is_200(channels, make_channel) -> None:
    channels["bot"].is_ready = False
    channels["webhook"] = make_channel(DeliveryResult.failed("Webhook not configured"))
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json={"message": "hi", "send_telegram": True})
        assert resp.status == 200
        data = await resp.json()
        assert data["success"] is True
        assert data["results"]["discord"] == {
            "success": False,
            "error": "Webhook not configured",
        }
    finally:
        await client.close()


async def test_all_failed_is_500(channels, make_channel) -> None:
    channels["bot"].is_ready = False
    channels["webhook"] = make_channel(DeliveryResult.failed("Status: 404"))
    channels["telegram"] = make_channel(DeliveryResult.failed("Not configured"))
    client = await _make_client(_app(channels))
    try:
        resp = await client.post("/send", json={"message": "hi", "send_telegram": "true"})
        assert resp.status == 500
        data = await resp.json()
        assert data["success"] is False
        assert data["results"]["telegram"]["error"] == "Not configured"
    finally:
        await client.close()


# -- Wiring -----------------------------------------------------------------


async def test_unconfigured_app_reports_failures() -> None:
    """With nothing configured the real channels fail without network calls."""
    client = await _make_client(create_app(Settings()))
    try:
        resp = await client.post("/send", json={"message": "hi", "send_telegram": True})
        assert resp.status == 500
        data = await resp.json()
        assert data["results"]["discord"]["error"] == "Webhook not configured"
        assert data["results"]["telegram"]["error"] == "Not configured"
    finally:
        await client.close()


def test_build_router_without_bot_client() -> None:
    router = build_router(Settings(discord_bot_token="t", discord_channel_id="1"))
    assert router.bot_ready is False


# -- RelayServer lifecycle --------------------------------------------------


async def test_server_skips_telegram_when_unconfigured() -> None:
    server = RelayServer(Settings(port=0))
    with patch("src.api.server.telegram.Bot") as mock_bot_cls:
        await server.start()
        try:
            mock_bot_cls.assert_not_called()
            assert server._runner is not None
        finally:
            await server.stop()
    assert server._runner is None


async def test_server_initializes_and_shuts_down_telegram() -> None:
    settings = Settings(port=0, telegram_bot_token="123:abc", telegram_chat_id="-100")
    bot = MagicMock()
    bot.initialize = AsyncMock()
    bot.shutdown = AsyncMock()

    server = RelayServer(settings)
    with patch("src.api.server.telegram.Bot", return_value=bot) as mock_bot_cls:
        await server.start()
        await server.stop()

    mock_bot_cls.assert_called_once_with("123:abc")
    bot.initialize.assert_awaited_once()
    bot.shutdown.assert_awaited_once()


async def test_server_survives_telegram_init_failure() -> None:
    settings = Settings(port=0, telegram_bot_token="123:abc", telegram_chat_id="-100")
    bot = MagicMock()
    bot.initialize = AsyncMock(side_effect=RuntimeError("Unauthorized"))
    bot.shutdown = AsyncMock()

    server = RelayServer(settings)
    with patch("src.api.server.telegram.Bot", return_value=bot):
        await server.start()
        try:
            assert server._runner is not None
        finally:
            await server.stop()

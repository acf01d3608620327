"""Async HTTP server exposing the relay endpoints.

Routes:
    GET  /      health/status snapshot (no auth)
    POST /send  relay a message (API key required when configured)

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop so it can share
the event loop with the Discord bot session.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import telegram
from aiohttp import web

from src.api.auth import require_api_key
from src.api.keys import ROUTER_KEY, SETTINGS_KEY
from src.notifications.discord_bot_channel import DiscordBotChannel
from src.notifications.discord_webhook_channel import DiscordWebhookChannel, close_session
from src.notifications.request import DeliveryRequest, MessageRequiredError
from src.notifications.router import DeliveryRouter, isoformat_utc
from src.notifications.telegram_channel import TelegramChannel

if TYPE_CHECKING:
    import discord

    from src.config import Settings

logger = logging.getLogger(__name__)

_FORM_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


async def _read_payload(request: web.Request) -> Mapping[str, Any]:
    """Parse a JSON or form body. Anything unparseable is an empty payload."""
    if request.content_type == "application/json":
        try:
            data = await request.json()
        except ValueError:
            logger.warning("Invalid JSON body on %s", request.path)
            return {}
        return data if isinstance(data, dict) else {}
    if request.content_type in _FORM_TYPES:
        return await request.post()
    return {}


async def _health(request: web.Request) -> web.Response:
    """GET / — which channels are configured and whether the bot is online."""
    settings = request.app[SETTINGS_KEY]
    router = request.app[ROUTER_KEY]
    return web.json_response({
        "status": "running",
        "auth": settings.auth_enabled,
        "discord": {
            "bot": router.bot_ready,
            "webhook": settings.discord_webhook_configured,
        },
        "telegram": settings.telegram_configured,
        "timestamp": isoformat_utc(datetime.now(UTC)),
    })


@require_api_key
async def _handle_send(request: web.Request) -> web.Response:
    """POST /send — validate the body, relay it, report per-channel results."""
    payload = await _read_payload(request)
    try:
        delivery = DeliveryRequest.from_payload(payload)
    except MessageRequiredError as exc:
        logger.warning("No message provided")
        return web.json_response({"success": False, "error": str(exc)}, status=400)

    logger.info("Received message: %s...", delivery.message[:50])

    result = await request.app[ROUTER_KEY].deliver(delivery)
    return web.json_response(result.to_dict(), status=200 if result.success else 500)


def build_router(
    settings: Settings,
    discord_client: discord.Client | None = None,
    telegram_bot: telegram.Bot | None = None,
) -> DeliveryRouter:
    """Wire the three channels from *settings* and the externally owned sessions."""
    return DeliveryRouter(
        bot=DiscordBotChannel(
            discord_client, settings.discord_channel_id, settings.default_username
        ),
        webhook=DiscordWebhookChannel(
            settings.discord_webhook_url, settings.default_username
        ),
        telegram=TelegramChannel(telegram_bot, settings.telegram_chat_id),
    )


def create_app(settings: Settings, router: DeliveryRouter | None = None) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[ROUTER_KEY] = router or build_router(settings)
    app.router.add_get("/", _health)
    app.router.add_post("/send", _handle_send)
    return app


class RelayServer:
    """Manages the aiohttp server lifecycle and the Telegram bot client."""

    def __init__(
        self, settings: Settings, discord_client: discord.Client | None = None
    ) -> None:
        self.settings = settings
        self.port = settings.port
        self._discord_client = discord_client
        self._telegram_bot: telegram.Bot | None = None
        self._runner: web.AppRunner | None = None

    async def _init_telegram(self) -> telegram.Bot | None:
        if not self.settings.telegram_configured:
            return None
        bot = telegram.Bot(self.settings.telegram_bot_token)
        try:
            await bot.initialize()
        except Exception:
            # Sends are still attempted and will report the failure per request.
            logger.exception("Telegram bot initialization failed")
        return bot

    async def start(self) -> None:
        """Start listening for relay requests."""
        self._telegram_bot = await self._init_telegram()
        router = build_router(self.settings, self._discord_client, self._telegram_bot)

        app = create_app(self.settings, router)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)
        await site.start()
        logger.info("Server running on port %d", self.port)

    async def stop(self) -> None:
        """Shut down the server and close outbound clients."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Server stopped")
        if self._telegram_bot is not None:
            await self._telegram_bot.shutdown()
            self._telegram_bot = None
        await close_session()

"""Discord bot implementation of the DeliveryChannel protocol."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

import discord

from src.notifications.channels import DeliveryResult
from src.notifications.formatting import DISCORD, format_message

logger = logging.getLogger(__name__)

# Discord rejects embed descriptions longer than this.
MAX_EMBED_DESCRIPTION = 4096

EMBED_COLOR = 0x5865F2


def truncate(text: str, limit: int = MAX_EMBED_DESCRIPTION) -> str:
    """Cut *text* to at most *limit* characters, ending in ``...`` when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class DiscordBotChannel:
    """Sends messages through a logged-in Discord bot session.

    The client is owned by the entry point; this channel only reads its
    readiness and never logs it in or out.
    """

    def __init__(
        self,
        client: discord.Client | None,
        channel_id: str,
        default_username: str = "Logger Bot",
    ) -> None:
        self._client = client
        self._channel_id = channel_id
        self._default_username = default_username

    @property
    def name(self) -> str:
        return "discord_bot"

    @property
    def is_ready(self) -> bool:
        return self._client is not None and self._client.is_ready()

    async def _resolve_channel(self) -> discord.abc.Messageable | None:
        """Look up the target channel, from cache first, then the API."""
        try:
            channel_id = int(self._channel_id)
        except ValueError:
            logger.error("DISCORD_CHANNEL_ID is not numeric: %r", self._channel_id)
            return None

        channel = self._client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(channel_id)
            except discord.NotFound:
                logger.error("Discord channel %s not found", channel_id)
                return None

        if not isinstance(channel, discord.abc.Messageable):
            logger.error("Discord channel %s is not text-based", channel_id)
            return None
        return channel

    def _build_embed(self, message: str, username: str | None) -> discord.Embed:
        return discord.Embed(
            title=username or self._default_username,
            description=truncate(message),
            colour=EMBED_COLOR,
            timestamp=datetime.now(UTC),
        )

    async def send(
        self,
        message: str,
        *,
        username: str | None = None,
        embed: bool = False,
    ) -> DeliveryResult:
        """Post *message* to the configured channel as text or an embed."""
        if not self.is_ready:
            return DeliveryResult.failed("Bot not ready")

        try:
            channel = await self._resolve_channel()
            if channel is None:
                return DeliveryResult.failed("Invalid channel")

            content = format_message(message, DISCORD)
            if embed:
                await channel.send(embed=self._build_embed(content, username))
                logger.info("Message sent via Discord bot (embed)")
                return DeliveryResult.ok("embed")

            await channel.send(content)
            logger.info("Message sent via Discord bot")
            return DeliveryResult.ok("bot")
        except Exception as exc:
            logger.exception("Discord bot send failed")
            return DeliveryResult.failed(str(exc))

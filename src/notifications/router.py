"""DeliveryRouter — fans one request out to Discord and, optionally, Telegram."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from src.notifications.channels import DeliveryChannel, DeliveryResult

if TYPE_CHECKING:
    from src.notifications.discord_bot_channel import DiscordBotChannel
    from src.notifications.request import DeliveryRequest

logger = logging.getLogger(__name__)


def isoformat_utc(moment: datetime) -> str:
    """Format *moment* like ``2024-01-31T12:00:00.000Z``."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class AggregateResult:
    """Per-channel results for one request.

    ``None`` means the channel was not attempted.
    """

    discord: DeliveryResult | None = None
    telegram: DeliveryResult | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def success(self) -> bool:
        """True if any attempted channel delivered the message."""
        return any(r.success for r in (self.discord, self.telegram) if r is not None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "results": {
                "discord": self.discord.to_dict() if self.discord else None,
                "telegram": self.telegram.to_dict() if self.telegram else None,
            },
            "timestamp": isoformat_utc(self.timestamp),
        }


class DeliveryRouter:
    """Chooses channels for a request and collects their results.

    Stateless between requests; safe to share across concurrent handlers.
    """

    def __init__(
        self,
        bot: DiscordBotChannel,
        webhook: DeliveryChannel,
        telegram: DeliveryChannel,
    ) -> None:
        self._bot = bot
        self._webhook = webhook
        self._telegram = telegram

    @property
    def bot_ready(self) -> bool:
        """Whether the Discord bot session is logged in and usable."""
        return self._bot.is_ready

    def discord_attempts(self, request: DeliveryRequest) -> list[DeliveryChannel]:
        """Ordered Discord channels to try for *request*."""
        if request.prefer_bot and self._bot.is_ready:
            return [self._bot, self._webhook]
        return [self._webhook]

    async def send_to_discord(self, request: DeliveryRequest) -> DeliveryResult:
        """Try each Discord channel in order and stop at the first success.

        The last channel's failure is the result when none succeeds.
        """
        attempts = self.discord_attempts(request)
        for channel in attempts:
            # Only the bot can render embeds; the webhook gets plain text.
            embed = request.use_embed and channel is self._bot
            result = await channel.send(
                request.message, username=request.username, embed=embed
            )
            if result.success:
                return result
            if channel is not attempts[-1]:
                logger.warning("Bot failed (%s), trying webhook...", result.error)
        return result

    async def deliver(self, request: DeliveryRequest) -> AggregateResult:
        """Deliver *request* and return the combined report."""
        if not request.send_telegram:
            return AggregateResult(discord=await self.send_to_discord(request))

        discord_result, telegram_result = await asyncio.gather(
            self.send_to_discord(request),
            self._telegram.send(request.message, username=request.username),
        )
        return AggregateResult(discord=discord_result, telegram=telegram_result)

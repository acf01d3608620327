"""Discord webhook implementation of the DeliveryChannel protocol."""

from __future__ import annotations

import logging

import aiohttp

from src.notifications.channels import DeliveryResult
from src.notifications.formatting import DISCORD, format_message

logger = logging.getLogger(__name__)

# Discord answers 204 by default and 200 when called with ?wait=true.
_SUCCESS_STATUSES = frozenset({200, 204})

_session: aiohttp.ClientSession | None = None


def _get_session() -> aiohttp.ClientSession:
    """Return (and lazily create) the shared aiohttp session."""
    global _session  # noqa: PLW0603
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession()
    return _session


async def close_session() -> None:
    """Close the shared session, if one was opened."""
    global _session  # noqa: PLW0603
    if _session is not None and not _session.closed:
        await _session.close()
    _session = None


class DiscordWebhookChannel:
    """Posts messages to a Discord incoming webhook.

    Webhooks cannot carry bot embeds here, so ``embed`` is ignored.
    """

    def __init__(self, webhook_url: str, default_username: str = "Logger Bot") -> None:
        self._webhook_url = webhook_url
        self._default_username = default_username

    @property
    def name(self) -> str:
        return "discord_webhook"

    async def send(
        self,
        message: str,
        *,
        username: str | None = None,
        embed: bool = False,
    ) -> DeliveryResult:
        """POST *message* to the webhook URL."""
        if not self._webhook_url:
            return DeliveryResult.failed("Webhook not configured")

        payload = {
            "content": format_message(message, DISCORD),
            "username": username or self._default_username,
        }

        session = _get_session()
        try:
            async with session.post(self._webhook_url, json=payload) as resp:
                if resp.status in _SUCCESS_STATUSES:
                    logger.info("Message sent via Discord webhook")
                    return DeliveryResult.ok("webhook")
                text = await resp.text()
                logger.error(
                    "Discord webhook failed: status=%d body=%s", resp.status, text[:200]
                )
                return DeliveryResult.failed(f"Status: {resp.status}")
        except Exception as exc:
            logger.exception("Discord webhook send failed (network error)")
            return DeliveryResult.failed(str(exc))

"""Telegram implementation of the DeliveryChannel protocol."""

from __future__ import annotations

import logging

import telegram
from telegram.constants import ParseMode
from telegram.error import TelegramError

from src.notifications.channels import DeliveryResult
from src.notifications.formatting import TELEGRAM, format_message

logger = logging.getLogger(__name__)


class TelegramChannel:
    """Sends messages to one Telegram chat via the Bot API."""

    def __init__(self, bot: telegram.Bot | None, chat_id: str) -> None:
        self._bot = bot
        self._chat_id = chat_id

    @property
    def name(self) -> str:
        return "telegram"

    @property
    def configured(self) -> bool:
        return self._bot is not None and bool(self._chat_id)

    async def send(
        self,
        message: str,
        *,
        username: str | None = None,
        embed: bool = False,
    ) -> DeliveryResult:
        """Send *message* as HTML to the configured chat."""
        if not self.configured:
            return DeliveryResult.failed("Not configured")

        try:
            await self._bot.send_message(
                chat_id=self._chat_id,
                text=format_message(message, TELEGRAM),
                parse_mode=ParseMode.HTML,
            )
        except TelegramError as exc:
            # ok=false answers carry the API description in exc.message, with
            # prefixes like "Bad Request: " stripped by the library;
            # NetworkError and TimedOut land here too.
            logger.error("Telegram rejected message: %s", exc.message)
            return DeliveryResult.failed(exc.message)
        except Exception as exc:
            logger.exception("TelegramChannel.send failed for chat_id=%s", self._chat_id)
            return DeliveryResult.failed(str(exc))

        logger.info("Message sent to Telegram")
        return DeliveryResult.ok()

"""Outbound delivery channels and the router that fans requests out to them."""

from src.notifications.channels import DeliveryChannel, DeliveryResult
from src.notifications.discord_bot_channel import DiscordBotChannel
from src.notifications.discord_webhook_channel import DiscordWebhookChannel
from src.notifications.formatting import format_message
from src.notifications.request import DeliveryRequest, MessageRequiredError
from src.notifications.router import AggregateResult, DeliveryRouter
from src.notifications.telegram_channel import TelegramChannel

__all__ = [
    "AggregateResult",
    "DeliveryChannel",
    "DeliveryRequest",
    "DeliveryResult",
    "DeliveryRouter",
    "DiscordBotChannel",
    "DiscordWebhookChannel",
    "MessageRequiredError",
    "TelegramChannel",
    "format_message",
]

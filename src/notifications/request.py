"""DeliveryRequest — the validated form of an inbound ``POST /send`` body."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


class MessageRequiredError(ValueError):
    """The request body has no usable ``message``."""

    def __init__(self) -> None:
        super().__init__("Message is required")


def _is_true(value: Any) -> bool:
    """Opt-in flag: only ``True`` or the string ``"true"`` switch it on."""
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip().lower() == "true"


def _is_false(value: Any) -> bool:
    """Opt-out flag: only ``False`` or the string ``"false"`` switch it off."""
    if isinstance(value, bool):
        return not value
    return isinstance(value, str) and value.strip().lower() == "false"


@dataclass(frozen=True)
class DeliveryRequest:
    """A message to relay plus the per-request delivery options.

    Attributes:
        message: Non-empty message text.
        username: Display name for webhook posts and embed titles.
        send_telegram: Also deliver to Telegram.
        prefer_bot: Try the Discord bot before the webhook.
        use_embed: Send a Discord embed instead of plain text (bot only).
    """

    message: str
    username: str | None = None
    send_telegram: bool = False
    prefer_bot: bool = True
    use_embed: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> DeliveryRequest:
        """Build a request from a parsed JSON or form body.

        Raises MessageRequiredError when ``message`` is absent, null or empty
        (any falsy value counts as empty).
        """
        message = payload.get("message")
        if not message:
            raise MessageRequiredError
        if not isinstance(message, str):
            message = str(message)

        username = payload.get("username")
        if username is not None and not isinstance(username, str):
            username = str(username)

        return cls(
            message=message,
            username=username or None,
            send_telegram=_is_true(payload.get("send_telegram")),
            prefer_bot=not _is_false(payload.get("use_bot")),
            use_embed=_is_true(payload.get("embed")),
        )

"""DeliveryChannel protocol — interface for all outbound relay channels."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

DeliveryMethod = Literal["bot", "embed", "webhook"]


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of a single delivery attempt.

    Attributes:
        success: Whether the platform accepted the message.
        method: How it was delivered. ``None`` when nothing was delivered
            or the channel has only one way of delivering.
        error: Human-readable failure reason.
    """

    success: bool
    method: DeliveryMethod | None = None
    error: str | None = None

    @classmethod
    def ok(cls, method: DeliveryMethod | None = None) -> DeliveryResult:
        return cls(success=True, method=method)

    @classmethod
    def failed(cls, error: str) -> DeliveryResult:
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.method is not None:
            data["method"] = self.method
        if self.error is not None:
            data["error"] = self.error
        return data


@runtime_checkable
class DeliveryChannel(Protocol):
    """Protocol that all delivery channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'discord_bot', 'telegram')."""
        ...

    async def send(
        self,
        message: str,
        *,
        username: str | None = None,
        embed: bool = False,
    ) -> DeliveryResult:
        """Deliver *message*. Never raises; failures come back as results."""
        ...

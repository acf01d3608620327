"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

import src.notifications.discord_webhook_channel as webhook_mod


@pytest.fixture(autouse=True)
def _reset_webhook_session():
    """Reset the module-level aiohttp session between tests."""
    webhook_mod._session = None
    yield
    webhook_mod._session = None


@pytest.fixture
def make_channel():
    """Factory for stand-in channels whose send() resolves to a fixed result."""

    def _make(result, *, ready: bool = True) -> MagicMock:
        channel = MagicMock()
        channel.is_ready = ready
        channel.send = AsyncMock(return_value=result)
        return channel

    return _make

"""API key gate for protected routes."""

from __future__ import annotations

import functools
import hmac
import logging
from collections.abc import Awaitable, Callable

from aiohttp import web

from src.api.keys import SETTINGS_KEY

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def extract_api_key(request: web.Request) -> str:
    """Return the presented key from X-API-Key or a Bearer Authorization header."""
    key = request.headers.get("X-API-Key", "")
    if key:
        return key
    return request.headers.get("Authorization", "").replace("Bearer ", "", 1)


def require_api_key(handler: Handler) -> Handler:
    """Reject requests whose key does not match ``settings.api_key``.

    With no key configured every request is let through and a warning is
    logged each time.
    """

    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        expected = request.app[SETTINGS_KEY].api_key
        if not expected:
            logger.warning("API_KEY not set - running without authentication!")
            return await handler(request)

        presented = extract_api_key(request)
        if not presented:
            logger.error("Request without API key")
            return web.json_response(
                {
                    "success": False,
                    "error": "API key required",
                    "message": "Please provide API key in X-API-Key header",
                },
                status=401,
            )

        # aiohttp decodes header bytes with surrogateescape; round-trip them.
        if not hmac.compare_digest(
            presented.encode("utf-8", "surrogateescape"),
            expected.encode("utf-8", "surrogateescape"),
        ):
            logger.error("Invalid API key attempt: %r...", presented[:8])
            return web.json_response(
                {"success": False, "error": "Invalid API key"}, status=403
            )

        return await handler(request)

    return wrapper

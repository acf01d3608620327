"""Typed keys for values stored on the aiohttp Application."""

from aiohttp import web

from src.config import Settings
from src.notifications.router import DeliveryRouter

SETTINGS_KEY = web.AppKey("settings", Settings)
ROUTER_KEY = web.AppKey("router", DeliveryRouter)

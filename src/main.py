"""Relay entry point."""

import asyncio
import logging

import discord

from src.api.server import RelayServer
from src.config import Settings, settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def _enabled(flag: bool) -> str:
    return "enabled" if flag else "disabled"


def create_discord_client(config: Settings) -> discord.Client | None:
    """Build the bot client when both the token and channel id are set."""
    if not config.discord_bot_configured:
        return None

    client = discord.Client(intents=discord.Intents(guilds=True, guild_messages=True))

    @client.event
    async def on_ready() -> None:
        logger.info("Discord bot logged in as %s", client.user)

    return client


async def run_discord_bot(client: discord.Client, token: str) -> None:
    """Log in and hold the gateway connection. Failures leave the bot unready."""
    try:
        await client.start(token)
    except discord.LoginFailure:
        logger.error("Discord bot login failed: invalid token")
    except Exception:
        logger.exception("Discord bot connection failed")


async def serve(config: Settings) -> None:
    """Run the Discord bot and the HTTP server until cancelled."""
    client = create_discord_client(config)
    bot_task: asyncio.Task[None] | None = None
    if client is not None:
        bot_task = asyncio.create_task(run_discord_bot(client, config.discord_bot_token))

    server = RelayServer(config, client)
    try:
        await server.start()
        await asyncio.Event().wait()
    finally:
        await server.stop()
        if client is not None:
            await client.close()
        if bot_task is not None:
            bot_task.cancel()


def main() -> None:
    """Start the relay with settings from the environment."""
    logger.info("Auth: %s", _enabled(settings.auth_enabled))
    logger.info("Discord bot: %s", _enabled(settings.discord_bot_configured))
    logger.info("Discord webhook: %s", _enabled(settings.discord_webhook_configured))
    logger.info("Telegram: %s", _enabled(settings.telegram_configured))
    if not settings.auth_enabled:
        logger.warning("API_KEY is empty, POST /send accepts unauthenticated requests")

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()

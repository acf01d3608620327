"""Application settings loaded from environment variables."""

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Relay configuration. All values come from environment variables.

    Any group left empty disables the matching channel; nothing here is
    required for the process to start.
    """

    # HTTP server
    port: int = Field(default=3000)

    # Shared secret for POST /send (empty = authentication disabled)
    api_key: str = Field(default="")

    # Discord bot
    discord_bot_token: str = Field(default="")
    discord_channel_id: str = Field(default="")

    # Discord webhook
    discord_webhook_url: str = Field(default="")

    # Telegram
    telegram_bot_token: str = Field(default="")
    telegram_chat_id: str = Field(default="")

    # Sender name used when a request carries no username
    default_username: str = Field(default="Logger Bot")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(), env_file_encoding="utf-8", frozen=True
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_key)

    @property
    def discord_bot_configured(self) -> bool:
        """Both the bot token and the target channel are set."""
        return bool(self.discord_bot_token and self.discord_channel_id)

    @property
    def discord_webhook_configured(self) -> bool:
        return bool(self.discord_webhook_url)

    @property
    def telegram_configured(self) -> bool:
        """Both the bot token and the target chat are set."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


settings = Settings()

"""Global Settings - Loads configuration from environment variables.

Centralizes all configuration so the bot, the OAuth callback server and the
polling scheduler don't read env vars directly.
"""

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

REQUIRED_VARIABLES = {
    "TELEGRAM_BOT_TOKEN": "telegram_bot_token",
    "GOOGLE_CLIENT_ID": "google_client_id",
    "GOOGLE_CLIENT_SECRET": "google_client_secret",
}


@dataclass
class Settings:
    """Application-wide settings loaded from environment variables."""

    # Telegram
    telegram_bot_token: str = ""
    telegram_poll_timeout: int = 30

    # Google OAuth client
    google_client_id: str = ""
    google_client_secret: str = ""
    redirect_uri: str = "http://localhost:3000"

    # Calendar polling
    calendar_id: str = "primary"
    poll_interval_seconds: int = 300
    lookahead_minutes: int = 60

    # User preferences
    user_timezone: str = "UTC"

    # HTTP server
    port: int = 3000
    app_env: str = "development"
    domain: str = "http://localhost:3000"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


def load_settings(port: int | None = None) -> Settings:
    """Load settings from environment variables with sensible defaults.

    Environment variables:
        TELEGRAM_BOT_TOKEN: Bot token from @BotFather
        TELEGRAM_POLL_TIMEOUT: Long-poll timeout for getUpdates, in seconds
        GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET: Google OAuth web client
        GOOGLE_REDIRECT_URI: OAuth redirect target (default: DOMAIN)
        CALENDAR_ID: Calendar to watch (default: "primary")
        POLL_INTERVAL_SECONDS: Seconds between calendar checks per user
        LOOKAHEAD_MINUTES: Size of the "upcoming" window
        USER_TIMEZONE: IANA timezone used to render event start times
        PORT: HTTP port for the OAuth callback server
        APP_ENV: "development" or "production"
        DOMAIN: Public base URL of the callback server

    Args:
        port: Overrides PORT (e.g. from the command line). DOMAIN and the
            redirect URI default to this port too.

    Returns:
        A populated Settings instance.
    """
    if port is None:
        port = int(os.getenv("PORT", "3000"))
    domain = os.getenv("DOMAIN", f"http://localhost:{port}")

    return Settings(
        telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        telegram_poll_timeout=int(os.getenv("TELEGRAM_POLL_TIMEOUT", "30")),
        google_client_id=os.getenv("GOOGLE_CLIENT_ID", ""),
        google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET", ""),
        redirect_uri=os.getenv("GOOGLE_REDIRECT_URI", domain),
        calendar_id=os.getenv("CALENDAR_ID", "primary"),
        poll_interval_seconds=int(os.getenv("POLL_INTERVAL_SECONDS", "300")),
        lookahead_minutes=int(os.getenv("LOOKAHEAD_MINUTES", "60")),
        user_timezone=os.getenv("USER_TIMEZONE", "UTC"),
        port=port,
        app_env=os.getenv("APP_ENV", "development"),
        domain=domain,
    )


def validate_settings(settings: Settings) -> list[str]:
    """Check settings the bot can't run without.

    Returns:
        One human-readable problem per missing or invalid variable.
    """
    problems = [
        f"{env_var} is not set"
        for env_var, attr in REQUIRED_VARIABLES.items()
        if not getattr(settings, attr)
    ]

    try:
        ZoneInfo(settings.user_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        problems.append(f"USER_TIMEZONE '{settings.user_timezone}' is not a known IANA timezone")

    return problems

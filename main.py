"""Telegram Calendar Bot - Entry Point.

Starts the OAuth callback server in a background thread, then long-polls
Telegram for /start commands in the main thread. Authorized chats get a
reminder for every event starting within the next hour, checked every few
minutes.

Usage:
    python main.py              # Port from $PORT (default 3000)
    python main.py --port 8080
    python main.py --debug      # Verbose logging
"""

import argparse
import logging
import signal
import sys
import threading
from datetime import timedelta
from functools import partial

from werkzeug.serving import BaseWSGIServer, make_server

from agents.auth.agent import OAuthCallbackHandler
from agents.auth.server import create_app
from agents.calendar.agent import CalendarAgent
from agents.calendar.google_client import build_auth_url, credentials_from_tokens, exchange_code
from agents.telegram.agent import TelegramAgent
from agents.telegram.bot import CommandHandler
from config.settings import Settings, load_settings, validate_settings
from core.scheduler import PollingScheduler
from core.token_store import InMemoryTokenStore

logger = logging.getLogger("main")


def configure_logging(debug: bool, production: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    if production:
        # Suppress Flask/Werkzeug request logs in production
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def build_components(settings: Settings) -> tuple[CommandHandler, OAuthCallbackHandler, PollingScheduler]:
    """Wire every component together from settings.

    Returns:
        The bot command handler, the OAuth callback handler and the scheduler.
    """
    client_id = settings.google_client_id
    client_secret = settings.google_client_secret
    redirect_uri = settings.redirect_uri

    credentials_factory = partial(credentials_from_tokens, client_id=client_id, client_secret=client_secret)

    store = InMemoryTokenStore()
    telegram = TelegramAgent(bot_token=settings.telegram_bot_token)
    checker = CalendarAgent(
        telegram=telegram,
        timezone=settings.user_timezone,
        calendar_id=settings.calendar_id,
        lookahead=timedelta(minutes=settings.lookahead_minutes),
    )
    scheduler = PollingScheduler(
        store=store,
        checker=checker,
        credentials_factory=credentials_factory,
        interval=settings.poll_interval_seconds,
    )
    callback_handler = OAuthCallbackHandler(
        store=store,
        telegram=telegram,
        checker=checker,
        scheduler=scheduler,
        code_exchanger=partial(exchange_code, client_id, client_secret, redirect_uri),
        credentials_factory=credentials_factory,
    )
    command_handler = CommandHandler(
        telegram=telegram,
        auth_url_builder=partial(build_auth_url, client_id, client_secret, redirect_uri),
        poll_timeout=settings.telegram_poll_timeout,
    )
    return command_handler, callback_handler, scheduler


def start_http_server(handler: OAuthCallbackHandler, port: int) -> BaseWSGIServer:
    """Serve the OAuth callback app in a background daemon thread.

    Args:
        handler: The OAuth callback handler to expose.
        port: Port number to bind to.

    Returns:
        The running server; call shutdown() to close the listener.
    """
    server = make_server("0.0.0.0", port, create_app(handler), threaded=True)
    thread = threading.Thread(target=server.serve_forever, name="OAuth Callback Server", daemon=True)
    thread.start()
    return server


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and run the bot until SIGTERM/SIGINT."""
    parser = argparse.ArgumentParser(description="Telegram bot for upcoming Google Calendar events.")
    parser.add_argument("--port", type=int, default=None, help="HTTP port for the OAuth callback server.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    args = parser.parse_args(argv)

    settings = load_settings(port=args.port)

    configure_logging(args.debug, settings.is_production)

    problems = validate_settings(settings)
    if problems:
        logger.error("Invalid configuration: %s", "; ".join(problems))
        sys.exit(1)

    command_handler, callback_handler, scheduler = build_components(settings)

    server = start_http_server(callback_handler, settings.port)
    logger.info("Server running in %s mode on %s", settings.app_env, settings.domain)
    logger.info("OAuth redirect URI: %s", settings.redirect_uri)

    stop_event = threading.Event()

    def handle_signal(signum, frame) -> None:
        logger.info("%s signal received.", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info("Telegram bot is active")
    command_handler.run_polling(stop_event)

    logger.info("Closing HTTP server...")
    server.shutdown()
    logger.info("HTTP server closed.")
    scheduler.shutdown()


if __name__ == "__main__":
    main()

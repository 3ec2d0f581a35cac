"""Telegram bot command handling.

Long-polls the Bot API for updates and answers /start with a Google
authorization link for the sender's chat.
"""

import logging
import threading
from typing import Any, Callable

from agents.telegram.agent import TelegramAgent
from core.audit import log_command

logger = logging.getLogger(__name__)

START_COMMAND = "/start"
RETRY_DELAY_SECONDS = 5


def build_welcome_text(auth_url: str) -> str:
    return (
        "Welcome! Please authorize the bot to access your Google Calendar:\n"
        f"{auth_url}\n\n"
        "After authorization, you will receive notifications for upcoming events."
    )


def _command_of(text: str) -> str:
    """Return the leading bot command of a message, without any @BotName suffix."""
    parts = text.split()
    if not parts or not parts[0].startswith("/"):
        return ""
    return parts[0].split("@", 1)[0]


class CommandHandler:
    """Reacts to bot commands sent by users."""

    def __init__(
        self,
        telegram: TelegramAgent,
        auth_url_builder: Callable[[Any], str],
        poll_timeout: int = 30,
    ) -> None:
        """Initialize the CommandHandler.

        Args:
            telegram: Bot API client.
            auth_url_builder: Builds the authorization URL for a chat ID.
            poll_timeout: Long-poll timeout for getUpdates, in seconds.
        """
        self.telegram = telegram
        self.auth_url_builder = auth_url_builder
        self.poll_timeout = poll_timeout
        self._offset: int | None = None

    def handle_update(self, update: dict[str, Any]) -> bool:
        """Handle one Bot API update.

        Returns:
            True if the update carried a command we acted on.
        """
        message = update.get("message") or {}
        text = message.get("text") or ""
        chat_id = (message.get("chat") or {}).get("id")

        if chat_id is None or _command_of(text) != START_COMMAND:
            return False

        log_command(chat_id, START_COMMAND)
        self.start(chat_id)
        return True

    def start(self, chat_id: Any) -> None:
        """Send the welcome message with the authorization link."""
        auth_url = self.auth_url_builder(chat_id)
        self.telegram.send_message(chat_id, build_welcome_text(auth_url))
        logger.info("Sent authorization link to chat %s", chat_id)

    def poll_once(self) -> int:
        """Fetch and handle one batch of updates.

        Returns:
            Number of updates received.
        """
        updates = self.telegram.get_updates(offset=self._offset, timeout=self.poll_timeout)
        for update in updates:
            self._offset = update["update_id"] + 1
            try:
                self.handle_update(update)
            except Exception:
                logger.exception("Failed to handle Telegram update %s", update.get("update_id"))
        return len(updates)

    def run_polling(self, stop_event: threading.Event) -> None:
        """Poll for updates until stop_event is set."""
        logger.info("Telegram bot polling started")
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                logger.exception("Error polling Telegram updates")
                stop_event.wait(RETRY_DELAY_SECONDS)
        logger.info("Telegram bot polling stopped")

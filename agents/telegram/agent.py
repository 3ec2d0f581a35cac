"""Telegram Agent - Bot API client.

Sends text messages to Telegram chats and fetches incoming updates via the
Bot API. Uses the requests library directly (no python-telegram-bot
dependency).
"""

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from core.audit import log_delivery

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class TelegramAgent:
    """Talks to the Telegram Bot API on behalf of one bot."""

    def __init__(self, bot_token: str) -> None:
        """Initialize the TelegramAgent.

        Args:
            bot_token: Telegram bot token from @BotFather.
        """
        self.bot_token = bot_token

    def _url(self, method: str) -> str:
        return f"{TELEGRAM_API}/bot{self.bot_token}/{method}"

    def send_message(self, chat_id: Any, text: str) -> dict[str, Any]:
        """Send a text message to a Telegram chat.

        Args:
            chat_id: Target chat ID.
            text: The message text to send.

        Returns:
            Result dict with "message_id", "chat_id", and "sent_at" on success,
            or "error" key on failure.
        """
        result = self._post_message(chat_id, text)
        log_delivery(chat_id, text, result)
        return result

    def _post_message(self, chat_id: Any, text: str) -> dict[str, Any]:
        try:
            response = requests.post(
                self._url("sendMessage"),
                json={"chat_id": chat_id, "text": text},
                timeout=15,
            )
            response.raise_for_status()
            data = response.json()

            if not data.get("ok"):
                error_desc = data.get("description", "Unknown Telegram API error")
                logger.error("Telegram API error: %s", error_desc)
                return {"error": error_desc}

            result_msg = data.get("result", {})
            return {
                "message_id": result_msg.get("message_id"),
                "chat_id": str(chat_id),
                "sent_at": datetime.now(timezone.utc).isoformat(),
            }

        except requests.Timeout:
            logger.error("Telegram API request timed out")
            return {"error": "Request timed out"}
        except requests.RequestException as e:
            logger.error("Telegram API request failed: %s", e)
            return {"error": str(e)}

    def get_updates(self, offset: int | None = None, timeout: int = 30) -> list[dict[str, Any]]:
        """Long-poll the Bot API for new updates.

        Args:
            offset: Identifier of the first update to return.
            timeout: Seconds Telegram may hold the request open.

        Returns:
            List of raw update dicts (possibly empty).

        Raises:
            requests.RequestException: If the Bot API is unreachable.
            ValueError: If the Bot API reports an error.
        """
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": ["message"]}
        if offset is not None:
            payload["offset"] = offset

        response = requests.post(self._url("getUpdates"), json=payload, timeout=timeout + 10)
        response.raise_for_status()
        data = response.json()

        if not data.get("ok"):
            raise ValueError(data.get("description", "Unknown Telegram API error"))

        return data.get("result", [])

"""Bot Delivery Audit Log.

Every notification the bot tries to send and every command it receives is
appended to a daily NDJSON file under logs/bot_messages/. Delivery entries
carry the outcome at the top level ("delivered", "message_id", "error"), so
failed reminders for a chat can be found with a one-line jq filter:

    jq 'select(.chat_id == "42" and .delivered == false)' logs/bot_messages/*.log
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

LOG_DIR = Path(__file__).parent.parent / "logs" / "bot_messages"

logger = logging.getLogger(__name__)


def log_delivery(chat_id: Any, text: str, result: dict[str, Any]) -> None:
    """Record one sendMessage attempt.

    Args:
        chat_id: Chat the message was addressed to.
        text: Message text.
        result: TelegramAgent result dict ("message_id" on success, "error" on failure).
    """
    _append({
        "direction": "outgoing",
        "chat_id": str(chat_id),
        "delivered": "error" not in result,
        "message_id": result.get("message_id"),
        "error": result.get("error"),
        "text": text,
    })


def log_command(chat_id: Any, command: str) -> None:
    """Record a bot command received from a chat."""
    _append({
        "direction": "incoming",
        "chat_id": str(chat_id),
        "command": command,
    })


def _append(entry: dict[str, Any]) -> None:
    now = datetime.now(timezone.utc)
    record = {"logged_at": now.strftime("%Y-%m-%dT%H:%M:%SZ"), **entry}
    log_file = LOG_DIR / f"{now:%Y-%m-%d}.log"

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str) + "\n")
    except OSError as e:
        logger.error("Failed to write bot audit log: %s", e)

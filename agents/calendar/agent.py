"""Calendar Agent - Core logic.

Checks a user's calendar for events starting soon and sends one Telegram
notification per event.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfoNotFoundError

from google.oauth2.credentials import Credentials

from agents.calendar.google_client import CalendarQueryError, fetch_events, format_event_start
from agents.telegram.agent import TelegramAgent

logger = logging.getLogger(__name__)

QUERY_FAILED_TEXT = "Error fetching your calendar events."


class CalendarAgent:
    """Turns upcoming calendar events into chat notifications."""

    def __init__(
        self,
        telegram: TelegramAgent,
        timezone: str = "UTC",
        calendar_id: str = "primary",
        lookahead: timedelta = timedelta(hours=1),
    ) -> None:
        """Initialize the CalendarAgent.

        Args:
            telegram: Client used to deliver notifications.
            timezone: User's IANA timezone string, used to render start times.
            calendar_id: Calendar to query.
            lookahead: How far ahead an event counts as "upcoming".
        """
        self.telegram = telegram
        self.timezone = timezone
        self.calendar_id = calendar_id
        self.lookahead = lookahead

    def check_upcoming_events(self, user_id: Any, creds: Credentials) -> int:
        """Notify a user about events starting within the lookahead window.

        Provider failures and events that can't be rendered are logged and
        reported to the user as a single generic message; they are never
        raised. Nothing is sent for the batch unless every event renders.

        Args:
            user_id: Chat to notify.
            creds: The user's Google credentials.

        Returns:
            Number of event notifications sent.
        """
        now = datetime.now(timezone.utc)

        try:
            events = fetch_events(creds, self.calendar_id, now, now + self.lookahead)
            messages = [build_event_message(event, self.timezone) for event in events]
        except (CalendarQueryError, ValueError, ZoneInfoNotFoundError) as e:
            logger.error("Error fetching calendar events for user %s: %s", user_id, e)
            self.telegram.send_message(user_id, QUERY_FAILED_TEXT)
            return 0

        for message in messages:
            self.telegram.send_message(user_id, message)

        if messages:
            logger.info("Sent %d upcoming event notification(s) to user %s", len(messages), user_id)
        return len(messages)


def build_event_message(raw_event: dict[str, Any], tz_name: str) -> str:
    """Build the notification text for one event."""
    title = raw_event.get("summary", "(No title)")
    return f"Upcoming event: {title}\nStarts at: {format_event_start(raw_event, tz_name)}"

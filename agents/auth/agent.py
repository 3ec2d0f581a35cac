"""OAuth Callback Handler - Core logic.

Completes the Google authorization started by /start: redeems the code,
stores the tokens for the chat carried in `state`, confirms in the chat,
runs a first calendar check and starts periodic polling.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable

from google.oauth2.credentials import Credentials

from agents.calendar.agent import CalendarAgent
from agents.calendar.google_client import TokenExchangeError
from agents.telegram.agent import TelegramAgent
from core.scheduler import PollingScheduler
from core.token_store import CredentialStore

logger = logging.getLogger(__name__)

WELCOME_TEXT = "Welcome to Telegram Calendar Bot"
SUCCESS_TEXT = "Authorization successful! You can close this window."
FAILURE_TEXT = "Authorization failed"
MISSING_STATE_TEXT = "Authorization failed: missing state"

CONNECTED_MESSAGE = (
    "Successfully connected to your Google Calendar! "
    "You will now receive notifications for upcoming events."
)
CONNECT_FAILED_MESSAGE = "Failed to connect to Google Calendar. Please try again with /start"


@dataclass
class CallbackResult:
    """Plain-text HTTP response for the redirect target."""

    body: str
    status: int = 200


class OAuthCallbackHandler:
    """Handles the redirect Google sends after the consent screen."""

    def __init__(
        self,
        store: CredentialStore,
        telegram: TelegramAgent,
        checker: CalendarAgent,
        scheduler: PollingScheduler,
        code_exchanger: Callable[[str], dict[str, Any]],
        credentials_factory: Callable[[dict[str, Any]], Credentials],
    ) -> None:
        """Initialize the handler.

        Args:
            store: Receives the token bundle for the authorized chat.
            telegram: Sends the confirmation/failure messages.
            checker: Runs the immediate calendar check.
            scheduler: Starts periodic checks for the chat.
            code_exchanger: Redeems an authorization code for tokens.
                Raises TokenExchangeError on failure.
            credentials_factory: Rebuilds credentials from a token bundle.
        """
        self.store = store
        self.telegram = telegram
        self.checker = checker
        self.scheduler = scheduler
        self.code_exchanger = code_exchanger
        self.credentials_factory = credentials_factory

    def handle(self, code: str | None, state: str | None) -> CallbackResult:
        """Process one redirect.

        Args:
            code: Authorization code from Google (absent on plain visits).
            state: Chat ID round-tripped through the consent screen.

        Returns:
            The response to render to the browser.
        """
        if not code:
            return CallbackResult(WELCOME_TEXT)

        chat_id = state
        if not chat_id:
            # Nobody to attach the tokens to or to notify
            logger.warning("OAuth callback carried a code but no state")
            return CallbackResult(MISSING_STATE_TEXT, 400)

        try:
            tokens = self.code_exchanger(code)
        except TokenExchangeError as e:
            logger.error("Error getting tokens for chat %s: %s", chat_id, e)
            self.telegram.send_message(chat_id, CONNECT_FAILED_MESSAGE)
            return CallbackResult(FAILURE_TEXT, 500)

        self.store.set(chat_id, tokens)
        self.telegram.send_message(chat_id, CONNECTED_MESSAGE)

        self.checker.check_upcoming_events(chat_id, self.credentials_factory(tokens))
        self.scheduler.register(chat_id)

        logger.info("Chat %s connected its Google Calendar", chat_id)
        return CallbackResult(SUCCESS_TEXT)

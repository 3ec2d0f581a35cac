"""Google Calendar API wrapper.

Handles the OAuth web flow (authorization URL, code exchange), rebuilding
credentials from a stored token bundle, and event fetching. This module
isolates all Google-specific code so the agent logic stays clean.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"


class TokenExchangeError(Exception):
    """Redeeming an authorization code for tokens failed."""


class CalendarQueryError(Exception):
    """Listing calendar events failed."""


def _build_flow(client_id: str, client_secret: str, redirect_uri: str) -> Flow:
    """Create an OAuth web flow for our client.

    PKCE is disabled: the URL is built when /start is handled and the code is
    redeemed by a different flow instance in the callback request.
    """
    client_config = {
        "web": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": AUTH_URI,
            "token_uri": TOKEN_URI,
            "redirect_uris": [redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=SCOPES,
        redirect_uri=redirect_uri,
        autogenerate_code_verifier=False,
    )


def build_auth_url(client_id: str, client_secret: str, redirect_uri: str, user_id: Any) -> str:
    """Build the Google consent URL for a chat.

    Args:
        client_id: Google OAuth client ID.
        client_secret: Google OAuth client secret.
        redirect_uri: Where Google sends the user back to (our callback server).
        user_id: Chat ID, carried through the redirect as the OAuth state.

    Returns:
        Authorization URL requesting offline, read-only calendar access.
    """
    flow = _build_flow(client_id, client_secret, redirect_uri)
    url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        state=str(user_id),
    )
    return url


def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str) -> dict[str, Any]:
    """Redeem an authorization code for a token bundle.

    Returns:
        The token dict issued by Google ("access_token", "refresh_token",
        "expires_at", ...), unmodified.

    Raises:
        TokenExchangeError: If Google rejects the code or is unreachable.
    """
    flow = _build_flow(client_id, client_secret, redirect_uri)
    try:
        tokens = flow.fetch_token(code=code)
    except Exception as e:
        raise TokenExchangeError(f"Could not exchange authorization code: {e}") from e

    logger.info("Exchanged authorization code (refresh token: %s)", "yes" if tokens.get("refresh_token") else "no")
    return dict(tokens)


def credentials_from_tokens(tokens: dict[str, Any], client_id: str, client_secret: str) -> Credentials:
    """Rebuild a Credentials object from a stored token bundle.

    Client ID and secret are attached so google-auth can refresh an expired
    access token on its own.
    """
    expiry = None
    if tokens.get("expires_at"):
        # google-auth compares expiry against naive UTC
        expiry = datetime.fromtimestamp(tokens["expires_at"], tz=timezone.utc).replace(tzinfo=None)

    return Credentials(
        token=tokens.get("access_token"),
        refresh_token=tokens.get("refresh_token"),
        token_uri=TOKEN_URI,
        client_id=client_id,
        client_secret=client_secret,
        scopes=SCOPES,
        expiry=expiry,
    )


def fetch_events(
    creds: Credentials,
    calendar_id: str,
    time_min: datetime,
    time_max: datetime,
) -> list[dict[str, Any]]:
    """Fetch events from a Google Calendar for a time window.

    Recurring events are expanded into single instances and ordered by
    start time.

    Args:
        creds: Google OAuth credentials.
        calendar_id: Calendar ID (e.g. "primary").
        time_min: Timezone-aware window start (inclusive).
        time_max: Timezone-aware window end (exclusive).

    Returns:
        List of raw event dicts from the Google Calendar API.

    Raises:
        CalendarQueryError: If the API call fails.
    """
    logger.info("Fetching events from calendar '%s' (%s to %s)", calendar_id, time_min, time_max)

    try:
        service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        events_result = (
            service.events()
            .list(
                calendarId=calendar_id,
                timeMin=time_min.isoformat(),
                timeMax=time_max.isoformat(),
                singleEvents=True,
                orderBy="startTime",
            )
            .execute()
        )
    except Exception as e:
        raise CalendarQueryError(f"Could not list events for calendar '{calendar_id}': {e}") from e

    events = events_result.get("items", [])
    logger.info("Retrieved %d events from calendar '%s'", len(events), calendar_id)
    return events


def format_event_start(raw_event: dict[str, Any], tz_name: str) -> str:
    """Render an event's start in the user's timezone.

    Args:
        raw_event: A raw event dict from the Google Calendar API.
        tz_name: The user's timezone string (e.g. "Europe/Berlin").

    Returns:
        e.g. "Mon Feb 17, 2025 9:00 AM PST", or "Mon Feb 17, 2025 (all day)".
    """
    start = raw_event.get("start", {})

    # All-day events use "date", timed events use "dateTime"
    if "dateTime" not in start:
        day = date.fromisoformat(start.get("date", ""))
        return f"{day.strftime('%a %b %d, %Y')} (all day)"

    start_dt = datetime.fromisoformat(start["dateTime"].replace("Z", "+00:00"))
    local = start_dt.astimezone(ZoneInfo(tz_name))
    return local.strftime("%a %b %d, %Y %-I:%M %p %Z")

"""Per-user calendar polling.

Each authorized chat gets one PollingTask: a daemon thread that wakes up every
`interval` seconds and runs a calendar check for that chat. Tasks are kept in
a registry keyed by chat id; registering a chat again cancels and replaces its
existing task, so a user never receives duplicate notification streams.
"""

import logging
import threading
from typing import Any, Callable

from google.oauth2.credentials import Credentials

from agents.calendar.agent import CalendarAgent
from core.token_store import CredentialStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300


class PollingTask:
    """Recurring background job for one user."""

    def __init__(self, user_id: str, interval: float, tick: Callable[[str], Any]) -> None:
        self.user_id = user_id
        self.interval = interval
        self._tick = tick
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=f"poll-{user_id}", daemon=True)

        self.ticks = 0
        self.failures = 0
        self.last_error: Exception | None = None

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def run_once(self) -> bool:
        """Run a single tick. Failures are logged and recorded, never raised.

        Returns:
            True if the tick completed without an exception.
        """
        try:
            self._tick(self.user_id)
            return True
        except Exception as e:
            self.failures += 1
            self.last_error = e
            logger.exception("Polling tick failed for user %s", self.user_id)
            return False
        finally:
            self.ticks += 1

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            self.run_once()
        logger.debug("Polling task for user %s stopped", self.user_id)


class PollingScheduler:
    """Registry of polling tasks, at most one per user."""

    def __init__(
        self,
        store: CredentialStore,
        checker: CalendarAgent,
        credentials_factory: Callable[[dict[str, Any]], Credentials],
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        """Initialize the scheduler.

        Args:
            store: Where each user's tokens live. A missing entry pauses polling.
            checker: Runs the actual calendar check.
            credentials_factory: Rebuilds credentials from a stored token bundle.
            interval: Seconds between checks for one user.
        """
        self.store = store
        self.checker = checker
        self.credentials_factory = credentials_factory
        self.interval = interval
        self._tasks: dict[str, PollingTask] = {}
        self._lock = threading.Lock()

    def tick(self, user_id: Any) -> bool:
        """Check the calendar for one user if they are still authorized.

        Returns:
            True if a calendar check ran, False if the user has no tokens.
        """
        tokens = self.store.get(user_id)
        if tokens is None:
            logger.debug("No tokens for user %s, skipping calendar check", user_id)
            return False

        creds = self.credentials_factory(tokens)
        self.checker.check_upcoming_events(user_id, creds)
        return True

    def register(self, user_id: Any) -> PollingTask:
        """Start polling for a user, replacing any task already running for them."""
        key = str(user_id)
        task = PollingTask(key, self.interval, self.tick)

        with self._lock:
            previous = self._tasks.get(key)
            self._tasks[key] = task

        if previous is not None:
            previous.cancel()
            logger.info("Replaced polling task for user %s", key)

        task.start()
        logger.info("Polling calendar for user %s every %ss", key, self.interval)
        return task

    def cancel(self, user_id: Any) -> bool:
        """Stop polling for a user. Returns True if a task was running."""
        with self._lock:
            task = self._tasks.pop(str(user_id), None)
        if task is None:
            return False
        task.cancel()
        logger.info("Cancelled polling task for user %s", user_id)
        return True

    def get_task(self, user_id: Any) -> PollingTask | None:
        with self._lock:
            return self._tasks.get(str(user_id))

    def active_users(self) -> list[str]:
        with self._lock:
            return sorted(self._tasks)

    def shutdown(self) -> None:
        """Cancel every polling task."""
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()
        logger.info("Stopped %d polling task(s)", len(tasks))

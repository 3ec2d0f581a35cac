"""Credential storage keyed by chat id.

The bot only ever talks to a CredentialStore, so the in-memory store can be
swapped for a persistent backend without touching the handlers.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class CredentialStore(ABC):
    """Maps a user identifier to the OAuth token bundle issued for it."""

    @abstractmethod
    def get(self, user_id: Any) -> dict[str, Any] | None:
        """Return the stored token bundle, or None if the user is unknown."""

    @abstractmethod
    def set(self, user_id: Any, tokens: dict[str, Any]) -> None:
        """Store (or overwrite) the token bundle for a user."""

    @abstractmethod
    def delete(self, user_id: Any) -> bool:
        """Forget a user. Returns True if an entry was removed."""

    @abstractmethod
    def __len__(self) -> int: ...

    def __contains__(self, user_id: Any) -> bool:
        return self.get(user_id) is not None


class InMemoryTokenStore(CredentialStore):
    """Process-local store. Entries live until deleted or the process exits."""

    def __init__(self) -> None:
        self._tokens: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: Any) -> dict[str, Any] | None:
        with self._lock:
            return self._tokens.get(str(user_id))

    def set(self, user_id: Any, tokens: dict[str, Any]) -> None:
        key = str(user_id)
        with self._lock:
            replaced = key in self._tokens
            self._tokens[key] = tokens
        logger.info("%s tokens for user %s", "Replaced" if replaced else "Stored", key)

    def delete(self, user_id: Any) -> bool:
        with self._lock:
            removed = self._tokens.pop(str(user_id), None) is not None
        if removed:
            logger.info("Forgot tokens for user %s", user_id)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

"""Token accessor consumed by the fetchers.

Fetchers never know how a token was obtained (OAuth exchange or a pasted
personal access token); they only call ``get_token()``. An auth failure
calls ``clear_token()``, which also notifies any listeners so the hosting
page can send the user back through login.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TokenProvider:
    """Holds the current credential for one dashboard session."""

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []

    def get_token(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set_token(self, token: Optional[str]) -> None:
        with self._lock:
            self._token = token

    def on_clear(self, listener: Callable[[], None]) -> None:
        """Register a callback run after the token is cleared."""
        self._listeners.append(listener)

    def clear_token(self) -> None:
        """Forget the credential and notify listeners (forces re-authentication)."""
        with self._lock:
            had_token = self._token is not None
            self._token = None
        if had_token:
            logger.warning("Stored GitHub token cleared; re-authentication required")
        for listener in self._listeners:
            listener()

    @property
    def token_kind(self) -> str:
        """'pat', 'oauth' or 'none' - OAuth app tokens may not see every PR."""
        token = self.get_token()
        if not token:
            return "none"
        if token.startswith(("ghp_", "github_pat_")):
            return "pat"
        return "oauth"

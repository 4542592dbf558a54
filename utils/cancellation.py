"""Cancellation token for abandoned dashboard views.

When the user navigates away, the view's token is cancelled. Work in
flight checks the token between network calls and before publishing
results, so a stale view never writes to the cache or the render callback.
"""

import threading


class OperationCancelled(Exception):
    """Raised inside a fetch cycle once its token has been cancelled."""


class CancellationToken:
    """Thread-safe "still relevant" flag for one view."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()

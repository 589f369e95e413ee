"""Cancellation token shared between a caller (often a UI thread) and a running task."""

import threading

from ..errors import OperationCancelled


class CancellationToken:
    """Thread-safe cancellation flag checked between units of work."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelled()


def check_cancelled(token) -> None:
    """``token.raise_if_cancelled()`` tolerating a missing token."""
    if token is not None:
        token.raise_if_cancelled()

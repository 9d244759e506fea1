"""Cancellation tokens for long-running driver calls."""

from __future__ import annotations

import threading
import time

from schemastep.errors import MigrationCancelled


class Cancellation:
    """Thread-safe cancellation signal with an optional deadline.

    Drivers call ``check()`` before each statement; the executor calls it
    before each planned migration. Another thread (or a signal handler) may
    call ``cancel()`` at any time.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def check(self) -> None:
        """Raise MigrationCancelled if cancelled or past the deadline."""
        if self._event.is_set():
            raise MigrationCancelled("operation cancelled")
        if self.expired:
            raise MigrationCancelled("operation deadline exceeded")


def check(cancel: Cancellation | None) -> None:
    """Check an optional token."""
    if cancel is not None:
        cancel.check()

# src/todo_core/core/cancel.py

"""
Deadline / cancellation token threaded through every store call.

Checks are cooperative: the core calls `check()` on entry and inside
per-item loops, and the engine handle polls `is_done()` from an SQLite
progress handler. Neither gives a latency guarantee for a statement the
engine is already executing.
"""

from __future__ import annotations

import threading
import time

from .errors import Canceled, OperationTimeout


class CancelToken:
    def __init__(self, deadline: float | None = None) -> None:
        # deadline is a time.monotonic() value
        self._deadline = deadline
        self._event = threading.Event()

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        return cls(deadline=time.monotonic() + max(0.0, float(seconds)))

    @classmethod
    def background(cls) -> CancelToken:
        """Token with no deadline, fired only by an explicit cancel()."""
        return cls()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def is_done(self) -> bool:
        return self.cancelled or self.expired

    def error(self) -> Canceled | OperationTimeout | None:
        # An explicit cancel wins over an expired deadline.
        if self.cancelled:
            return Canceled("operation canceled")
        if self.expired:
            return OperationTimeout("deadline exceeded")
        return None

    def check(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def __repr__(self) -> str:
        return f"CancelToken(cancelled={self.cancelled}, remaining={self.remaining()})"

"""
Per-pass lifetime: a deadline plus a cancel flag. Every remote call checks
it first and passes the remaining time as the client request timeout.
"""
import threading
import time
from typing import Optional

from .errors import PassCancelled


class PassContext:
    def __init__(self, timeout: Optional[float] = None, cancelled: Optional[threading.Event] = None):
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = cancelled or threading.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self):
        """Raise PassCancelled if the pass was cancelled or is out of time."""
        if self._cancelled.is_set():
            raise PassCancelled("pass cancelled")
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise PassCancelled("pass deadline exceeded")

    def request_timeout(self) -> Optional[float]:
        self.check()
        return self.remaining()

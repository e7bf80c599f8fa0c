"""At most one outstanding blocking operation per boat.

Starting a new operation cancels the previous one, so a newer motion
command supersedes an in-progress wait instead of queueing behind it.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from .errors import DeadlineExceeded, OperationCancelled


class Operation:
    def __init__(self, timeout: float | None = None):
        self._cancelled = threading.Event()
        self.deadline = None if timeout is None else time.monotonic() + timeout

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def check(self) -> None:
        """Raise if the operation was cancelled or its deadline has passed."""
        if self._cancelled.is_set():
            raise OperationCancelled("operation cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise DeadlineExceeded("operation deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Wait for seconds, waking early on cancel or deadline."""
        if self.deadline is not None:
            seconds = min(seconds, max(0.0, self.deadline - time.monotonic()))
        self._cancelled.wait(seconds)
        self.check()

    def wait_for_success(self, interval: float, check_fn) -> None:
        """Poll check_fn every interval seconds until it returns True."""
        while True:
            self.check()
            if check_fn():
                return
            self.sleep(interval)


class SingleOperationManager:
    def __init__(self):
        self._lock = threading.Lock()
        self._current: Operation | None = None

    @contextmanager
    def new(self, timeout: float | None = None):
        op = Operation(timeout)
        with self._lock:
            if self._current is not None:
                self._current.cancel()
            self._current = op
        try:
            yield op
        finally:
            with self._lock:
                if self._current is op:
                    self._current = None

    def cancel_running(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()
                self._current = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._current is not None

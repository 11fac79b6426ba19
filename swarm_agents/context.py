"""Cooperative cancellation shared by concurrently running turn loops."""

import threading
import time
from typing import Optional

from .errors import DeadlineExceeded, RunCancelled


class RunContext:
    """
    Cancellation token with an optional deadline.

    Runs call check() before every gateway call. Nothing is interrupted
    mid-call; cancellation is observed at the next boundary.
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["RunContext"] = None):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: Optional[str] = None
        self._timer: Optional[threading.Timer] = None
        self.timeout = timeout
        self.parent = parent
        self.deadline: Optional[float] = None

        if timeout is not None:
            self.deadline = time.monotonic() + timeout
            self._timer = threading.Timer(max(timeout, 0), self._expire)
            self._timer.daemon = True
            self._timer.start()
        if parent is not None and parent.deadline is not None:
            if self.deadline is None or parent.deadline < self.deadline:
                self.deadline = parent.deadline
                self.timeout = parent.timeout

    @classmethod
    def background(cls) -> "RunContext":
        """A context that is never cancelled unless cancel() is called."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float, parent: Optional["RunContext"] = None) -> "RunContext":
        return cls(timeout=seconds, parent=parent)

    def _expire(self):
        self._set("deadline")

    def _set(self, reason: str):
        with self._lock:
            if self._reason is None:
                self._reason = reason
        self._event.set()

    def cancel(self):
        """Cancel every run observing this context."""
        self._set("cancelled")
        if self._timer is not None:
            self._timer.cancel()

    @property
    def reason(self) -> Optional[str]:
        if self._reason is None and self.parent is not None:
            return self.parent.reason
        if self._reason is None and self.deadline is not None and time.monotonic() >= self.deadline:
            return "deadline"
        return self._reason

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or timeout elapses. Returns True if cancelled."""
        if self.parent is None:
            return self._event.wait(timeout)
        end = None if timeout is None else time.monotonic() + timeout
        while not self.cancelled:
            step = 0.05 if end is None else min(0.05, end - time.monotonic())
            if step <= 0:
                break
            self._event.wait(step)
        return self.cancelled

    def error(self, agent_name: Optional[str] = None) -> Optional[RunCancelled]:
        """The cancellation error for this context, or None while it is live."""
        reason = self.reason
        if reason is None:
            return None
        if reason == "deadline":
            return DeadlineExceeded(timeout=self.timeout, agent_name=agent_name)
        return RunCancelled(agent_name=agent_name)

    def check(self, agent_name: Optional[str] = None):
        """Raise RunCancelled or DeadlineExceeded if this context is done."""
        error = self.error(agent_name)
        if error is not None:
            raise error

    def close(self):
        """Release the deadline timer without cancelling."""
        if self._timer is not None:
            self._timer.cancel()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

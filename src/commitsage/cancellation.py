"""
Cooperative cancellation shared by concurrent generation tasks.

A :class:`CancellationToken` combines an explicit cancel flag with an
optional deadline. It is handed to every task and to the generator
itself so that work that has not started yet is skipped and HTTP calls
that are in flight do not outlive the deadline.
"""

from __future__ import annotations

import threading
import time
from typing import Optional


class GenerationCancelledError(Exception):
    """Raised when work is skipped or aborted because of cancellation."""

    pass


class CancellationToken:
    """Thread-safe cancel flag with an optional monotonic deadline."""

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._event = threading.Event()
        self._deadline = deadline

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "CancellationToken":
        """Create a token that expires ``seconds`` from now (never if ``None``)."""
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, ``None`` when there is none."""
        if self._deadline is None:
            return None
        return max(self._deadline - time.monotonic(), 0.0)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, waking early on cancellation.

        Returns True if the token is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(seconds, 0.0))
        return self.is_cancelled()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled():
            if self._deadline is not None and time.monotonic() >= self._deadline:
                raise GenerationCancelledError("generation deadline exceeded")
            raise GenerationCancelledError("generation cancelled")

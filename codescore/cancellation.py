"""Cooperative cancellation and per-request deadlines."""

from __future__ import annotations

import threading
import time

from codescore.errors import ReviewCancelled, ReviewTimeout


class CancellationToken:
    """Flag checked by detectors and patches at their start."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Deadline:
    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        self._expires_at = time.monotonic() + timeout_ms / 1000.0

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at


def checkpoint(token: CancellationToken | None, deadline: Deadline | None) -> None:
    """Raise if the request was cancelled or ran out of time."""
    if token is not None and token.cancelled:
        raise ReviewCancelled("Review was cancelled")
    if deadline is not None and deadline.expired:
        raise ReviewTimeout(deadline.timeout_ms)

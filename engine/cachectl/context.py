"""Caller context for blocking remote calls: a cancel flag plus an optional deadline."""

from __future__ import annotations

import time
from threading import Event
from typing import Optional

from .errors import OperationCancelled


class CallContext:
    """Cancellation handle shared between a caller and one reconcile pass.

    The caller may ``cancel()`` from another thread; operations call
    ``check()`` before touching the object or the network and use
    ``remaining()`` to bound each remote call.
    """

    def __init__(self, timeout: Optional[float] = None, *, clock=time.monotonic):
        self._clock = clock
        self._event = Event()
        self.deadline: Optional[float] = clock() + timeout if timeout is not None else None

    @classmethod
    def background(cls) -> CallContext:
        """A context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self) -> None:
        self._event.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self) -> None:
        if self._event.is_set():
            raise OperationCancelled("context cancelled")
        if self.expired:
            raise OperationCancelled("context deadline exceeded")

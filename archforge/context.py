"""Request-scoped cancellation and deadlines for pipeline runs."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from archforge.errors import PipelineCancelled


@dataclass
class RequestContext:
    """Carries a cancel flag and an optional monotonic deadline.

    One context is created per request and handed to every collaborator call.
    ``check()`` is called between stages; it raises ``PipelineCancelled`` with
    the cause once the context was cancelled or its deadline passed.
    """

    deadline: Optional[float] = None
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)
    _reason: str = field(default="", repr=False)

    @classmethod
    def background(cls) -> "RequestContext":
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float | None) -> "RequestContext":
        if not seconds or seconds <= 0:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "request cancelled") -> None:
        self._reason = reason
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        if self._cancelled.is_set():
            raise PipelineCancelled(self._reason or "request cancelled")
        if self.expired:
            raise PipelineCancelled("deadline exceeded")

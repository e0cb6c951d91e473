"""Cancellation and deadline context shared by every network-bound call.

A context is passed explicitly into each operation. Operations call
``check`` between steps and hand ``request_hook`` to azure-core as
``raw_request_hook`` so every outgoing HTTP request (including each parallel
block PUT and each SDK retry) is refused once the context is cancelled.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Dict, Optional

from blob_provisioner.errors import CancelledError


class OperationContext:
    def __init__(self, timeout: Optional[float] = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = None if timeout is None else clock() + timeout

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self._clock() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self._clock())

    def check(self, step: str) -> None:
        if self._cancelled.is_set():
            raise CancelledError(f"{step}: operation cancelled")
        if self.expired:
            raise CancelledError(f"{step}: deadline exceeded")

    def wait(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early on cancel or deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancelled.wait(max(0.0, seconds))

    def request_hook(self, request: Any) -> None:  # noqa: ANN401
        self.check("http request")

    def call_options(self) -> Dict[str, Any]:
        """Per-call keyword arguments understood by azure-core pipelines."""
        return {"raw_request_hook": self.request_hook}


def ensure_context(context: Optional[OperationContext]) -> OperationContext:
    return context if context is not None else OperationContext()

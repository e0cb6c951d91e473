"""Explicit state machine around an azure-core ``LROPoller``.

Submitted -> Polling -> Succeeded | Failed | TimedOut | Cancelled

The poller keeps polling the provider on its own thread; this class only
decides when to stop waiting, so cancellation and timeout are visible and
testable instead of being buried in ``poller.result()``.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from azure.core.exceptions import AzureError
from azure.core.polling import LROPoller

from blob_provisioner.context import OperationContext, ensure_context
from blob_provisioner.errors import CancelledError, OperationTimeoutOrFailureError
from blob_provisioner.settings import PollingSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationState(str, Enum):
    SUBMITTED = "Submitted"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    CANCELLED = "Cancelled"


TERMINAL_STATES = frozenset(
    {OperationState.SUCCEEDED, OperationState.FAILED, OperationState.TIMED_OUT, OperationState.CANCELLED}
)


class ProvisioningOperation(Generic[T]):
    def __init__(
        self,
        poller: LROPoller[T],
        *,
        description: str,
        polling: Optional[PollingSettings] = None,
        context: Optional[OperationContext] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.poller = poller
        self.description = description
        self.polling = polling or PollingSettings()
        self.context = ensure_context(context)
        self._clock = clock
        self.state = OperationState.SUBMITTED
        self.history: List[OperationState] = [OperationState.SUBMITTED]

    def _transition(self, state: OperationState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"{self.description}: already finished in state {self.state.value}")
        logger.debug("%s: %s -> %s", self.description, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _provider_status(self) -> Any:  # noqa: ANN401
        try:
            return self.poller.status()
        except AzureError:
            return None

    def wait(self) -> T:
        """Block until the operation reaches a terminal state and return its result."""
        started = self._clock()
        timeout = self.polling.operation_timeout
        self._transition(OperationState.POLLING)

        while True:
            try:
                self.context.check(self.description)
            except CancelledError:
                self._transition(OperationState.CANCELLED)
                raise

            if self.poller.done():
                break

            elapsed = self._clock() - started
            if timeout is not None and elapsed >= timeout:
                self._transition(OperationState.TIMED_OUT)
                raise OperationTimeoutOrFailureError(
                    f"{self.description}: gave up waiting after {elapsed:.1f}s "
                    f"(provider status: {self._provider_status()})",
                    state=OperationState.TIMED_OUT.value,
                )

            logger.debug("%s: still running status=%s", self.description, self._provider_status())
            self.context.wait(self.polling.poll_interval)

        try:
            result = self.poller.result()
        except AzureError as exc:
            self._transition(OperationState.FAILED)
            raise OperationTimeoutOrFailureError(
                f"{self.description}: long-running operation failed: {exc}",
                state=OperationState.FAILED.value,
            ) from exc

        self._transition(OperationState.SUCCEEDED)
        return result

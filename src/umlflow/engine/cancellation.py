"""Cooperative cancellation threaded from the planner down to agents."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
import signal
import threading
from typing import Any

from umlflow.errors import WorkflowCancelledError


@dataclass
class CancellationToken:
    """Thread-safe flag checked between loop passes and between stages.

    The engine never checks it inside a pass, so every pass either writes all
    of its agents' outputs or none of the following passes start.
    """

    _event: threading.Event = field(default_factory=threading.Event, init=False)
    _reason: str = field(default="", init=False)
    _original_handler: Any | None = field(default=None, init=False)

    def cancel(self, reason: str = "cancellation requested") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def raise_if_cancelled(self, where: str) -> None:
        if self._event.is_set():
            raise WorkflowCancelledError(f"Cancelled before {where}: {self._reason}")

    def _handle(self, signum: int, frame: object | None) -> None:
        del frame  # Unused
        self.cancel(f"signal {signum}")

    @contextmanager
    def watch_sigint(self) -> Iterator[CancellationToken]:
        """Route SIGINT to this token for the duration of the block."""
        self._original_handler = signal.getsignal(signal.SIGINT)
        signal.signal(signal.SIGINT, self._handle)
        try:
            yield self
        finally:
            if self._original_handler is not None:
                signal.signal(signal.SIGINT, self._original_handler)
                self._original_handler = None

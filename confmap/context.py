"""Cancellation and deadlines for a single retrieval."""

from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

from .exceptions import RetrievalCancelledError


class RetrieveContext:
    """Carries a cancellation event and an optional deadline.

    Providers bound their network timeouts by :meth:`remaining` and register
    hooks with :meth:`on_cancel` that interrupt the call in flight, so
    :meth:`cancel` unblocks a retrieval promptly. Setting a shared
    ``cancel_event`` directly is only noticed between steps.
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be non-negative")
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancel_event = cancel_event or threading.Event()
        self._hooks: List[Callable[[], None]] = []
        self._hooks_lock = threading.Lock()

    @classmethod
    def background(cls) -> "RetrieveContext":
        return cls()

    def cancel(self) -> None:
        with self._hooks_lock:
            self._cancel_event.set()
            hooks, self._hooks = self._hooks, []
        for hook in hooks:
            hook()

    def on_cancel(self, hook: Callable[[], None]) -> Callable[[], None]:
        """Run ``hook`` when :meth:`cancel` is called; returns an unregister function.

        The hook runs immediately if the context is already cancelled.
        """

        with self._hooks_lock:
            already_cancelled = self._cancel_event.is_set()
            if not already_cancelled:
                self._hooks.append(hook)
        if already_cancelled:
            hook()

        def unregister() -> None:
            with self._hooks_lock:
                if hook in self._hooks:
                    self._hooks.remove(hook)

        return unregister

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set() or self.deadline_exceeded

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def bound_timeout(self, timeout: Optional[float]) -> Optional[float]:
        remaining = self.remaining()
        if remaining is None:
            return timeout
        if timeout is None:
            return remaining
        return min(timeout, remaining)

    def raise_if_cancelled(self, uri: str) -> None:
        if self._cancel_event.is_set():
            raise RetrievalCancelledError(f"Retrieval of '{uri}' was cancelled.", uri=uri)
        if self.deadline_exceeded:
            raise RetrievalCancelledError(f"Deadline exceeded while retrieving '{uri}'.", uri=uri)

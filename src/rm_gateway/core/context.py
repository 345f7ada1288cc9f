"""
Per-call cancellation, deadline and parent-span carrier.

A :class:`CallContext` is passed explicitly into every pipeline call. Blocking
work (token refresh, the HTTP exchange) runs through :meth:`CallContext.run`,
which returns as soon as the work finishes, the context is cancelled, or the
deadline passes, whichever comes first.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Any, Callable, List, Optional, TypeVar

from .errors import DeadlineExceeded, RequestCancelled

if TYPE_CHECKING:
    from .tracing import Span

__all__ = ["CallContext", "background"]

T = TypeVar("T")

_LOCK_POLL_SECONDS = 0.05


class CallContext:
    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        parent_span: Optional["Span"] = None,
        _parent: Optional["CallContext"] = None,
    ) -> None:
        if timeout is not None:
            computed = time.monotonic() + timeout
            deadline = computed if deadline is None else min(deadline, computed)
        if _parent is not None and _parent.deadline is not None:
            deadline = (
                _parent.deadline if deadline is None else min(deadline, _parent.deadline)
            )
        self.deadline = deadline
        self.parent_span = parent_span
        self._parent = _parent
        self._cancelled = threading.Event()
        self._waiters: List[threading.Event] = []
        self._lock = threading.Lock()
        if _parent is not None:
            _parent._add_waiter(self._cancelled)

    def with_span(self, span: "Span") -> "CallContext":
        """Derive a context that shares cancellation and uses ``span`` as parent."""
        return CallContext(parent_span=span, _parent=self)

    def with_timeout(self, timeout: float) -> "CallContext":
        return CallContext(timeout=timeout, parent_span=self.parent_span, _parent=self)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            waiters = list(self._waiters)
        for waiter in waiters:
            waiter.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or ``None`` when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def raise_if_done(self) -> None:
        if self.cancelled:
            raise RequestCancelled("rm: call cancelled")
        if self.expired():
            raise DeadlineExceeded("rm: call deadline exceeded")

    def _add_waiter(self, event: threading.Event) -> None:
        with self._lock:
            self._waiters.append(event)
            if self._cancelled.is_set():
                event.set()
        if self._parent is not None:
            self._parent._add_waiter(event)

    def _remove_waiter(self, event: threading.Event) -> None:
        with self._lock:
            try:
                self._waiters.remove(event)
            except ValueError:
                pass
        if self._parent is not None:
            self._parent._remove_waiter(event)

    def acquire(self, lock: threading.Lock) -> None:
        """Acquire ``lock`` while still honouring cancellation and deadline."""
        while True:
            self.raise_if_done()
            wait = _LOCK_POLL_SECONDS
            remaining = self.remaining()
            if remaining is not None:
                wait = min(wait, remaining)
            if lock.acquire(timeout=wait):
                return

    def run(
        self,
        func: Callable[..., T],
        *args: Any,
        on_abandon: Optional[Callable[[T], None]] = None,
        **kwargs: Any,
    ) -> T:
        """
        Call ``func`` on a helper thread and wait for it under this context.

        If the context is cancelled or times out first, :class:`RequestCancelled`
        (or :class:`DeadlineExceeded`) is raised immediately; a late result is
        handed to ``on_abandon`` so it can release resources.
        """
        self.raise_if_done()

        done = threading.Event()
        outcome: dict = {}
        state_lock = threading.Lock()

        def target() -> None:
            try:
                result = func(*args, **kwargs)
            except BaseException as exc:  # noqa: BLE001 - re-raised on the caller thread
                outcome["error"] = exc
            else:
                with state_lock:
                    abandoned = outcome.get("abandoned", False)
                    outcome["result"] = result
                if abandoned and on_abandon is not None:
                    on_abandon(result)
            finally:
                done.set()

        self._add_waiter(done)
        try:
            worker = threading.Thread(target=target, name="rm-gateway-call", daemon=True)
            worker.start()
            done.wait(self.remaining())
        finally:
            self._remove_waiter(done)

        with state_lock:
            if "result" not in outcome and "error" not in outcome:
                outcome["abandoned"] = True
        if outcome.get("abandoned"):
            self.raise_if_done()
            raise DeadlineExceeded("rm: call deadline exceeded")

        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]


def background() -> CallContext:
    """A context that is never cancelled and has no deadline."""
    return CallContext()

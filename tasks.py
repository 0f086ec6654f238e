"""Thread-based cancellation scopes, coalescing signals and joinable tasks."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional

_LOGGER = logging.getLogger(__name__)


class Cancelled(Exception):
    """Raised by blocking primitives once their token has been cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceeded(Cancelled):
    """Cancellation cause used when a token's timeout fires."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class CancelToken:
    """A cancellation scope that may carry a deadline and a parent.

    Cancelling a token cancels every child derived from it.  A token used as a
    context manager is released (cancelled and detached from its parent) on
    exit, mirroring the ``cancel()`` call that must follow every derived scope.
    """

    def __init__(self, parent: Optional["CancelToken"] = None, timeout: Optional[float] = None):
        self._lock = threading.RLock()
        self._event = threading.Event()
        self._cause: Optional[Cancelled] = None
        self._children: List[CancelToken] = []
        self._callbacks: List[Callable[[], None]] = []
        self._parent = parent
        self._timer: Optional[threading.Timer] = None

        if parent is not None:
            parent._attach(self)
        if timeout is not None and not self._event.is_set():
            self._timer = threading.Timer(max(0.0, timeout), self._expire)
            self._timer.daemon = True
            self._timer.start()

    # ----- state ---------------------------------------------------------
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def cause(self) -> Optional[Cancelled]:
        return self._cause

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or *timeout* elapses; True when cancelled."""

        return self._event.wait(timeout)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise self._cause  # type: ignore[misc]

    def child(self, timeout: Optional[float] = None) -> "CancelToken":
        return CancelToken(parent=self, timeout=timeout)

    # ----- cancellation --------------------------------------------------
    def cancel(self, cause: Optional[Cancelled] = None) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._cause = cause if cause is not None else Cancelled()
            self._event.set()
            children, self._children = self._children, []
            callbacks, self._callbacks = self._callbacks, []
            timer, self._timer = self._timer, None

        if timer is not None:
            timer.cancel()
        for child in children:
            child.cancel(self._cause)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                _LOGGER.exception("Cancellation callback %r failed", callback)
        if self._parent is not None:
            self._parent._detach(self)

    def release(self) -> None:
        """Cancel this scope once its owner is done with it."""

        self.cancel()

    def _expire(self) -> None:
        self.cancel(DeadlineExceeded())

    def _attach(self, child: "CancelToken") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
            cause = self._cause
        child.cancel(cause)

    def _detach(self, child: "CancelToken") -> None:
        with self._lock:
            try:
                self._children.remove(child)
            except ValueError:
                pass

    # ----- callbacks -----------------------------------------------------
    def add_done_callback(self, callback: Callable[[], None]) -> None:
        """Invoke *callback* once the token is cancelled (immediately if it is)."""

        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_done_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    def __enter__(self) -> "CancelToken":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()


class Signal:
    """Capacity-one coalescing notification.

    A notification arriving while one is already pending is dropped, so a
    consumer must treat receipt as "re-check state now".
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending = False
        self._listeners: List[Callable[[], None]] = []

    def notify(self) -> bool:
        with self._lock:
            if self._pending:
                return False
            self._pending = True
            listeners = list(self._listeners)
        for listener in listeners:
            listener()
        return True

    def consume(self) -> bool:
        with self._lock:
            pending, self._pending = self._pending, False
        return pending

    def pending(self) -> bool:
        with self._lock:
            return self._pending

    def add_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass


class Waker:
    """Condition variable shared by several notification sources."""

    def __init__(self):
        self._cond = threading.Condition()

    def poke(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def wait_for(self, predicate: Callable[[], Any]) -> Any:
        """Block until *predicate* returns a truthy outcome and return it.

        The predicate runs under the condition lock; every source must change
        its state before calling :meth:`poke` so no wake-up is lost.
        """

        with self._cond:
            return self._cond.wait_for(predicate)


class Task:
    """Run *target* on a named thread and report completion to a waker."""

    def __init__(self, target: Callable[[], Any], *, name: str, waker: Optional[Waker] = None):
        self._target = target
        self._waker = waker
        self.done = threading.Event()
        self.result: Any = None
        self.exception: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def name(self) -> str:
        return self._thread.name

    def start(self) -> "Task":
        self._thread.start()
        return self

    def _run(self) -> None:
        try:
            self.result = self._target()
        except BaseException as exc:  # reported to whoever joins the task
            self.exception = exc
        finally:
            self.done.set()
            if self._waker is not None:
                self._waker.poke()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

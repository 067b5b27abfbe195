"""Thread marshaling, debouncing and observer registration.

The text buffer and the binder table belong to one thread (the editor's UI
thread).  ``Dispatcher`` remembers that thread: work submitted from it runs
immediately, work submitted from anywhere else is queued until the owner
calls ``process_pending``.

``Debouncer`` coalesces bursts of calls into one call after a quiet
interval.  ``Signal`` is a minimal observer list whose ``connect`` returns
the function that disconnects the observer again.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Dispatcher:
    """Runs callables on the thread that created it."""

    def __init__(self) -> None:
        self._thread_id = threading.get_ident()
        self._queue: queue.SimpleQueue[tuple[Callable[..., Any], tuple]] = queue.SimpleQueue()

    def check_access(self) -> bool:
        return threading.get_ident() == self._thread_id

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Queue ``fn(*args)`` for the owning thread."""
        self._queue.put((fn, args))

    def invoke(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run ``fn(*args)`` now if on the owning thread, else queue it.

        Returns the call's result, or None when it was queued.
        """
        if self.check_access():
            return fn(*args)
        self.post(fn, *args)
        return None

    def process_pending(self) -> int:
        """Run everything queued so far.  Must be called on the owning thread.

        A failing callable is logged and does not stop the others.

        Returns:
            Number of callables run
        """
        if not self.check_access():
            raise RuntimeError("process_pending() called from a foreign thread")
        count = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except queue.Empty:
                return count
            try:
                fn(*args)
            except Exception:
                logger.exception("Dispatched call %r failed", fn)
            count += 1

    @property
    def pending(self) -> int:
        return self._queue.qsize()


class Debouncer:
    """Call ``action`` once, ``interval`` seconds after the last ``trigger``.

    Only the arguments of the last trigger are kept.  When a dispatcher is
    given, the call is posted to it instead of running on the timer thread.
    """

    def __init__(self, interval: float, action: Callable[..., Any],
                 dispatcher: Dispatcher | None = None):
        self.interval = interval
        self._action = action
        self._dispatcher = dispatcher
        self._timer: threading.Timer | None = None
        self._args: tuple | None = None
        self._lock = threading.Lock()

    def trigger(self, *args: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._args = args
            self._timer = threading.Timer(self.interval, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        """Run a pending call right now on the calling thread.

        Returns:
            True if there was a pending call
        """
        args = self._take()
        if args is None:
            return False
        self._action(*args)
        return True

    def cancel(self) -> None:
        self._take()

    @property
    def is_pending(self) -> bool:
        return self._args is not None

    def _take(self) -> tuple | None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            args, self._args = self._args, None
            return args

    def _fire(self) -> None:
        with self._lock:
            args, self._args = self._args, None
            self._timer = None
        if args is None:
            return
        if self._dispatcher is not None:
            self._dispatcher.post(self._action, *args)
        else:
            self._action(*args)


class Signal:
    """Observer list; ``connect`` returns an unregister callable."""

    def __init__(self) -> None:
        self._handlers: list[Callable[..., Any]] = []

    def connect(self, handler: Callable[..., Any]) -> Callable[[], None]:
        self._handlers.append(handler)

        def disconnect() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return disconnect

    def emit(self, *args: Any) -> None:
        for handler in list(self._handlers):
            try:
                handler(*args)
            except Exception:
                logger.exception("Signal handler %r failed", handler)

    def __len__(self) -> int:
        return len(self._handlers)

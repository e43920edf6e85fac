"""
chatpanel/presenter.py

Presentation-thread abstraction.  Everything that touches the rendering
surface or the entry text is funnelled through one Presenter, so work
submitted from arbitrary threads runs serialized and in submission order.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import queue
import threading
from typing import Any, Callable, Optional, Protocol

log = logging.getLogger(__name__)


class Presenter(Protocol):
    """
    Serialized execution context.

      post(fn)     → schedule fn, return immediately
      invoke(fn)   → run fn and wait for its result; inline when the caller
                     is already on the presentation thread
      is_current() → True when called from the presentation thread
    """

    def post(self, fn: Callable[[], Any]) -> None: ...

    def invoke(self, fn: Callable[[], Any]) -> Any: ...

    def is_current(self) -> bool: ...


# ──────────────────────────────────────────────────────────────────────────────
# Dedicated worker thread
# ──────────────────────────────────────────────────────────────────────────────

_STOP = object()


class ThreadPresenter:
    """
    A single daemon thread draining a FIFO work queue.

    Used for headless panels and in tests.  Exceptions raised by posted work
    are logged and do not stop the worker.
    """

    def __init__(self, name: str = "presentation") -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def post(self, fn: Callable[[], Any]) -> None:
        if self._closed:
            raise RuntimeError("presenter is closed")
        self._queue.put(fn)

    def invoke(self, fn: Callable[[], Any]) -> Any:
        if self.is_current():
            return fn()
        future: concurrent.futures.Future = concurrent.futures.Future()

        def _call() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as exc:
                future.set_exception(exc)

        self.post(_call)
        return future.result()

    def is_current(self) -> bool:
        return threading.current_thread() is self._thread

    def flush(self) -> None:
        """Block until everything posted so far has run."""
        self.invoke(lambda: None)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        if not self.is_current():
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            fn = self._queue.get()
            if fn is _STOP:
                return
            try:
                fn()
            except Exception:
                log.exception("presentation task failed")


# ──────────────────────────────────────────────────────────────────────────────
# asyncio event loop (prompt_toolkit application loop)
# ──────────────────────────────────────────────────────────────────────────────


class LoopPresenter:
    """
    Serializes onto an asyncio event loop.  post() uses call_soon_threadsafe,
    so callbacks keep FIFO order across threads; errors in posted callbacks
    go to the loop's exception handler.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def post(self, fn: Callable[[], Any]) -> None:
        self._loop.call_soon_threadsafe(fn)

    def invoke(self, fn: Callable[[], Any]) -> Any:
        if self.is_current():
            return fn()
        future: concurrent.futures.Future = concurrent.futures.Future()

        def _call() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(fn())
            except BaseException as exc:
                future.set_exception(exc)

        self._loop.call_soon_threadsafe(_call)
        return future.result()

    def is_current(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

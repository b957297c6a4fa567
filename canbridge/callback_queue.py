"""A queue of callbacks invoked by whichever thread services it.

Callbacks are added with a removal id; every callback that shares an id can
be taken off the queue at once, and ``remove_by_id`` waits for calls of that
id running in other threads to finish first.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

__all__ = ["CallbackResult", "CallResult", "CallbackQueue"]


class CallbackResult(Enum):
    """What a callback reports back when it is called."""

    CALLED = "called"
    TRY_AGAIN = "try_again"
    INVALID = "invalid"


class CallResult(Enum):
    """Outcome of :meth:`CallbackQueue.call_one`."""

    CALLED = "called"
    TRY_AGAIN = "try_again"
    DISABLED = "disabled"
    EMPTY = "empty"


class _RWLock:
    """Many shared holders or one exclusive holder."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    def acquire_shared(self) -> None:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_shared(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_exclusive(self) -> None:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_exclusive(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()


@dataclass
class _IdInfo:
    removal_id: int
    calling_lock: _RWLock


@dataclass
class _CallbackInfo:
    callback: Callable[[], Any]
    removal_id: int = 0
    marked_for_removal: bool = False


def _is_ready(callback: Callable[[], Any]) -> bool:
    ready = getattr(callback, "ready", None)
    return bool(ready()) if callable(ready) else True


class CallbackQueue:
    """FIFO of callbacks, serviced by ``call_one`` and ``call_available``.

    A callback is any callable.  If it has a ``ready()`` method, ``call_one``
    skips it while that returns False.  A callback that returns
    ``CallbackResult.TRY_AGAIN`` is put back at the end of the queue.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._callbacks: deque[_CallbackInfo] = deque()
        self._calling = 0
        self._enabled = enabled
        self._cond = threading.Condition()
        self._id_lock = threading.Lock()
        self._id_info: dict[int, _IdInfo] = {}
        self._tls = threading.local()

    def _thread_state(self) -> threading.local:
        tls = self._tls
        if not hasattr(tls, "pending"):
            tls.pending = deque()
            tls.calling_id = None
        return tls

    def add_callback(self, callback: Callable[[], Any], removal_id: int = 0) -> None:
        """Queue ``callback`` under ``removal_id``; ignored while disabled."""
        with self._id_lock:
            if removal_id not in self._id_info:
                self._id_info[removal_id] = _IdInfo(removal_id, _RWLock())
        with self._cond:
            if not self._enabled:
                return
            self._callbacks.append(_CallbackInfo(callback, removal_id))
            self._cond.notify()

    def _get_id_info(self, removal_id: int) -> _IdInfo | None:
        with self._id_lock:
            return self._id_info.get(removal_id)

    def remove_by_id(self, removal_id: int) -> None:
        """Drop every queued callback with ``removal_id``.

        Waits for calls of that id running in other threads.  Called from
        inside a callback, it also cancels matching callbacks this thread has
        already taken off the queue but not yet called.
        """
        tls = self._thread_state()
        id_info = self._get_id_info(removal_id)
        if id_info is None:
            return

        in_own_call = tls.calling_id == id_info.removal_id
        if in_own_call:
            id_info.calling_lock.release_shared()
        id_info.calling_lock.acquire_exclusive()
        try:
            with self._cond:
                self._callbacks = deque(
                    info for info in self._callbacks if info.removal_id != removal_id
                )
        finally:
            id_info.calling_lock.release_exclusive()
            if in_own_call:
                id_info.calling_lock.acquire_shared()

        for info in tls.pending:
            if info.removal_id == removal_id:
                info.marked_for_removal = True

        with self._id_lock:
            self._id_info.pop(removal_id, None)

    def call_one(self, timeout: float = 0.0) -> CallResult:
        """Call the first ready callback, waiting up to ``timeout`` seconds for one."""
        tls = self._thread_state()
        with self._cond:
            if not self._enabled:
                return CallResult.DISABLED
            if not self._callbacks:
                if timeout > 0:
                    self._cond.wait(timeout)
                if not self._callbacks:
                    return CallResult.EMPTY
                if not self._enabled:
                    return CallResult.DISABLED

            chosen = next((info for info in self._callbacks if _is_ready(info.callback)), None)
            if chosen is not None:
                self._callbacks.remove(chosen)
            self._callbacks = deque(info for info in self._callbacks if not info.marked_for_removal)
            if chosen is None:
                return CallResult.TRY_AGAIN
            self._calling += 1

        tls.pending.append(chosen)
        result = CallResult.CALLED
        try:
            result = self._call_one_cb(tls)
        finally:
            if result is not CallResult.EMPTY:
                with self._cond:
                    self._calling -= 1
        return result

    def call_available(self, timeout: float = 0.0) -> None:
        """Call every queued callback, waiting up to ``timeout`` seconds for the first."""
        tls = self._thread_state()
        with self._cond:
            if not self._enabled:
                return
            if not self._callbacks:
                if timeout > 0:
                    self._cond.wait(timeout)
                if not self._callbacks or not self._enabled:
                    return
            tls.pending.extend(self._callbacks)
            self._callbacks.clear()
            self._calling += len(tls.pending)

        called = 0
        try:
            while tls.pending:
                try:
                    result = self._call_one_cb(tls)
                except BaseException:
                    called += 1
                    raise
                if result is not CallResult.EMPTY:
                    called += 1
        finally:
            with self._cond:
                self._calling -= called

    def _call_one_cb(self, tls: threading.local) -> CallResult:
        if not tls.pending:
            return CallResult.EMPTY
        info = tls.pending[0]
        id_info = self._get_id_info(info.removal_id)
        if id_info is None:
            tls.pending.popleft()
            return CallResult.CALLED

        id_info.calling_lock.acquire_shared()
        try:
            last_calling = tls.calling_id
            tls.calling_id = id_info.removal_id
            result: Any = CallbackResult.INVALID
            try:
                tls.pending.popleft()
                if not info.marked_for_removal:
                    result = info.callback()
            finally:
                tls.calling_id = last_calling

            if result is CallbackResult.TRY_AGAIN and not info.marked_for_removal:
                with self._cond:
                    self._callbacks.append(info)
                return CallResult.TRY_AGAIN
            return CallResult.CALLED
        finally:
            id_info.calling_lock.release_shared()

    def is_empty(self) -> bool:
        """Whether nothing is queued and nothing is being called."""
        with self._cond:
            return not self._callbacks and self._calling == 0

    def clear(self) -> None:
        """Drop every queued callback; calls in progress carry on."""
        with self._cond:
            self._callbacks.clear()

    def enable(self) -> None:
        """Accept and call callbacks again."""
        with self._cond:
            self._enabled = True
            self._cond.notify_all()

    def disable(self) -> None:
        """Ignore new callbacks and stop calling queued ones."""
        with self._cond:
            self._enabled = False
            self._cond.notify_all()

    def is_enabled(self) -> bool:
        """Whether the queue is enabled."""
        with self._cond:
            return self._enabled
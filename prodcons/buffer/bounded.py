"""Fixed-capacity FIFO buffer with blocking put/take.

One lock guards the item deque; two conditions bound to that lock carry the
"space available" and "item available" signals. Every mutation broadcasts to
the opposite side, and every waiter re-checks its condition in a loop, so a
stale or spurious wakeup simply goes back to sleep.

Blocking calls accept an optional deadline (``timeout`` seconds, raises
``Timeout``) and an optional ``CancelToken`` (raises ``Cancelled``). Neither
leaves a partial insert or removal behind: the deque is only touched once the
wait loop has exited normally.
"""
from __future__ import annotations
import threading
import time
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, TypeVar

from prodcons.core.cancel import CancelToken
from prodcons.core.errors import Cancelled, InvalidCapacity, Timeout

T = TypeVar("T")


class BoundedBuffer(Generic[T]):
    def __init__(self, capacity: int, name: str = "buffer"):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidCapacity(f"Buffer size must be at least 1 (got {capacity!r}).")
        self.name = name
        self._cap = capacity
        self._items: Deque[T] = deque()
        self._lock = threading.Lock()
        self._space_available = threading.Condition(self._lock)
        self._item_available = threading.Condition(self._lock)

    @property
    def capacity(self) -> int:
        return self._cap

    # ------------- blocking operations -------------
    def put(self, item: T, timeout: Optional[float] = None, cancel: Optional[CancelToken] = None) -> None:
        """Append ``item`` at the tail, blocking while the buffer is full."""
        with self._lock:
            self._wait_for(self._space_available, self._has_space, timeout, cancel, "put")
            self._items.append(item)
            self._item_available.notify_all()

    def take(self, timeout: Optional[float] = None, cancel: Optional[CancelToken] = None) -> T:
        """Remove and return the head item, blocking while the buffer is empty."""
        with self._lock:
            self._wait_for(self._item_available, self._has_item, timeout, cancel, "take")
            item = self._items.popleft()
            self._space_available.notify_all()
            return item

    # ------------- snapshot reads (diagnostic only) -------------
    def size(self) -> int:
        with self._lock:
            return len(self._items)

    def is_full(self) -> bool:
        with self._lock:
            return len(self._items) == self._cap

    def is_empty(self) -> bool:
        with self._lock:
            return not self._items

    def snapshot(self) -> List[T]:
        """Return a shallow copy of current items in FIFO order (consumes nothing)."""
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"BoundedBuffer(name={self.name!r}, size={self.size()}, capacity={self._cap})"

    # ------------- internals (caller holds self._lock) -------------
    def _has_space(self) -> bool:
        return len(self._items) < self._cap

    def _has_item(self) -> bool:
        return len(self._items) > 0

    def _wake_all(self) -> None:
        with self._lock:
            self._space_available.notify_all()
            self._item_available.notify_all()

    def _wait_for(
        self,
        cond: threading.Condition,
        ready: Callable[[], bool],
        timeout: Optional[float],
        cancel: Optional[CancelToken],
        op: str,
    ) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be a non-negative number")
        if ready():
            return
        deadline = None if timeout is None else time.monotonic() + timeout
        if cancel is not None:
            cancel.add_callback(self._wake_all)
        try:
            while not ready():
                if cancel is not None and cancel.cancelled:
                    raise Cancelled(f"{op} on {self.name} cancelled")
                if deadline is None:
                    cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise Timeout(f"{op} on {self.name} timed out after {timeout}s")
                cond.wait(remaining)
        finally:
            if cancel is not None:
                cancel.remove_callback(self._wake_all)


__all__ = ["BoundedBuffer"]

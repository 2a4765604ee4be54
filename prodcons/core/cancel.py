"""Cancellation token checked by blocking buffer operations.

A token is a one-shot flag. Code that blocks on something other than the
token itself (e.g. a condition variable) registers a wake-up callback so a
``cancel()`` reaches it promptly instead of at the next unrelated notify.
"""
from __future__ import annotations
import threading
from typing import Callable, List, Optional

from loguru import logger


class CancelToken:
    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Set the flag, then run every registered wake-up callback once."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
        for cb in callbacks:
            try:
                cb()
            except Exception as e:  # a broken waker must not stop the others
                logger.error(f"[CancelToken] wake-up callback failed for {self.name}: {e}")

    def add_callback(self, cb: Callable[[], None]) -> None:
        # Registration happens before the caller re-checks ``cancelled``; a
        # cancel racing with it is seen either by the check or by the callback.
        with self._lock:
            self._callbacks.append(cb)

    def remove_callback(self, cb: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(cb)
            except ValueError:
                pass

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to ``timeout`` seconds; returns True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"CancelToken(name={self.name!r}, {state})"


__all__ = ["CancelToken"]

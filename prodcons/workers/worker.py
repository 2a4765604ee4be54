"""Producer and consumer loops running on their own threads.

A worker only ever moves between RUNNING and a terminal state. Blocking
inside the buffer is not a worker state; it ends either with the operation
completing or with `Cancelled`, which stops the loop cleanly.
"""
from __future__ import annotations
import random
import threading
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from prodcons.buffer.bounded import BoundedBuffer
from prodcons.core.cancel import CancelToken
from prodcons.core.errors import Cancelled


class Role(str, Enum):
    PRODUCER = "producer"
    CONSUMER = "consumer"


class WorkerState(str, Enum):
    NEW = "new"
    RUNNING = "running"
    CANCELLED = "cancelled"
    COMPLETED = "completed"  # max_items reached
    FAILED = "failed"


TERMINAL_STATES = frozenset({WorkerState.CANCELLED, WorkerState.COMPLETED, WorkerState.FAILED})


def random_item(rng: Optional[random.Random] = None) -> int:
    """Uniform random integer in [0, 100)."""
    return (rng or random).randrange(100)


class Worker:
    def __init__(
        self,
        role: Role,
        name: str,
        buffer: BoundedBuffer,
        delay: float = 0.0,
        source: Optional[Callable[[], Any]] = None,
        on_item: Optional[Callable[[Any], None]] = None,
        max_items: Optional[int] = None,
        log=None,
    ):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        if max_items is not None and max_items < 0:
            raise ValueError("max_items must be >= 0")
        self.role = Role(role)
        self.name = name
        self.buffer = buffer
        self.delay = float(delay)
        self.source = source or random_item
        self.on_item = on_item
        self.max_items = max_items
        self.log = (log or logger).bind(worker=name)
        self.token = CancelToken(name)
        self.processed = 0
        self.error: Optional[BaseException] = None
        self._state = WorkerState.NEW
        self._state_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def producer(cls, name: str, buffer: BoundedBuffer, delay: float = 0.0, **kwargs) -> "Worker":
        return cls(Role.PRODUCER, name, buffer, delay=delay, **kwargs)

    @classmethod
    def consumer(cls, name: str, buffer: BoundedBuffer, delay: float = 0.0, **kwargs) -> "Worker":
        return cls(Role.CONSUMER, name, buffer, delay=delay, **kwargs)

    # ------------- lifecycle -------------
    @property
    def state(self) -> WorkerState:
        with self._state_lock:
            return self._state

    def _set_state(self, state: WorkerState) -> None:
        with self._state_lock:
            self._state = state

    def start(self) -> "Worker":
        if self._thread is not None:
            raise RuntimeError(f"{self.name} already started")
        self._set_state(WorkerState.RUNNING)
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()
        return self

    def cancel(self) -> None:
        self.token.cancel()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the thread to exit; returns True once it has terminated."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def done(self) -> bool:
        """True once the loop has reached a terminal state."""
        return self.state in TERMINAL_STATES

    # ------------- loop -------------
    def run(self) -> None:
        """Loop body; runs on the worker thread (or inline, for tests)."""
        self._set_state(WorkerState.RUNNING)
        self.log.info(f"{self.name} started.")
        step = self._produce_once if self.role is Role.PRODUCER else self._consume_once
        try:
            while not self.token.cancelled:
                if self._limit_reached():
                    self._set_state(WorkerState.COMPLETED)
                    self.log.info(f"{self.name} completed after {self.processed} item(s).")
                    return
                step()
                self.processed += 1
                if not self._limit_reached() and self._pause():
                    break
        except Cancelled:
            pass
        except Exception as e:
            self.error = e
            self._set_state(WorkerState.FAILED)
            self.log.exception(f"{self.name} failed: {e}")
            return
        self._set_state(WorkerState.CANCELLED)
        verb = "producing" if self.role is Role.PRODUCER else "consuming"
        self.log.info(f"{self.name} was cancelled while {verb} ({self.processed} item(s)).")

    def _limit_reached(self) -> bool:
        return self.max_items is not None and self.processed >= self.max_items

    def _pause(self) -> bool:
        """Sleep for ``delay``; True if cancelled meanwhile."""
        if self.delay > 0:
            return self.token.wait(self.delay)
        return self.token.cancelled

    def _produce_once(self) -> None:
        item = self.source()
        self.log.debug(f"{self.name} is producing item: {item}")
        self.buffer.put(item, cancel=self.token)
        self.log.info(f"{self.name} produced item: {item} | Buffer size: {self.buffer.size()}")

    def _consume_once(self) -> None:
        item = self.buffer.take(cancel=self.token)
        self.log.info(f"{self.name} consumed item: {item} | Buffer size: {self.buffer.size()}")
        if self.on_item is not None:
            self.on_item(item)

    def __repr__(self) -> str:
        return f"Worker(name={self.name!r}, role={self.role.value}, state={self.state.value})"


__all__ = ["Role", "Worker", "WorkerState", "TERMINAL_STATES", "random_item"]

"""Supervisor: one shared buffer, N producers, M consumers.

The supervisor owns the buffer and every worker handle. ``start`` builds and
launches them; ``shutdown`` cancels all workers and joins them under a single
overall deadline, reporting (not raising) any that are still alive.
"""
from __future__ import annotations
import threading
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from prodcons.buffer.bounded import BoundedBuffer
from prodcons.core.config import Settings, validate_settings
from prodcons.core.log_session import LogSession
from prodcons.workers.worker import Role, Worker


class Supervisor:
    def __init__(self, log_session: Optional[LogSession] = None):
        self.log_session = log_session
        self.log = log_session.bind(component="supervisor") if log_session else logger.bind(component="supervisor")
        self.settings: Optional[Settings] = None
        self.buffer: Optional[BoundedBuffer[int]] = None
        self.workers: List[Worker] = []
        self._stop_event = threading.Event()
        self._started = False

    # ------------- lifecycle -------------
    def start(self, config: Union[Settings, Mapping[str, Any]]) -> List[Worker]:
        """Validate ``config``, build the buffer and launch every worker.

        Raises:
            InvalidConfig: capacity < 1, or a negative count/delay.
            RuntimeError: the supervisor is already running.
        """
        if self._started:
            raise RuntimeError("Supervisor already started; call shutdown() first")
        if isinstance(config, Settings):
            # model_construct() skips validation, so re-check
            config = config.model_dump()
        settings = validate_settings(config)

        self.settings = settings
        self.buffer = BoundedBuffer(settings.buffer_capacity)
        self._stop_event.clear()
        self.workers = []
        for i in range(1, settings.producer_count + 1):
            self.workers.append(Worker.producer(
                f"Producer-{i}", self.buffer, delay=settings.producer_delay, log=self._worker_log(),
            ))
        for i in range(1, settings.consumer_count + 1):
            self.workers.append(Worker.consumer(
                f"Consumer-{i}", self.buffer, delay=settings.consumer_delay, log=self._worker_log(),
            ))
        self._started = True
        self.log.info(
            f"Starting {settings.producer_count} producer(s) and {settings.consumer_count} consumer(s) "
            f"on a buffer of capacity {settings.buffer_capacity}"
        )
        for w in self.workers:
            w.start()
        return list(self.workers)

    def shutdown(self, timeout: Optional[float] = None) -> List[str]:
        """Cancel every worker and wait for them; returns names still alive."""
        self._stop_event.set()
        if not self._started:
            return []
        for w in self.workers:
            w.cancel()
        deadline = None if timeout is None else time.monotonic() + timeout
        stuck: List[str] = []
        for w in self.workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not w.join(remaining):
                stuck.append(w.name)
        if stuck:
            self.log.warning(f"Workers did not terminate within {timeout}s: {', '.join(stuck)}")
        else:
            self.log.info(f"All {len(self.workers)} worker(s) stopped.")
        self._started = False
        return stuck

    def request_stop(self) -> None:
        """Wake ``wait()``; safe to call from a signal handler."""
        self._stop_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until ``request_stop()``; returns True if a stop was requested."""
        return self._stop_event.wait(timeout)

    @property
    def running(self) -> bool:
        return self._started

    # ------------- diagnostics -------------
    @property
    def producers(self) -> List[Worker]:
        return [w for w in self.workers if w.role is Role.PRODUCER]

    @property
    def consumers(self) -> List[Worker]:
        return [w for w in self.workers if w.role is Role.CONSUMER]

    def stats(self) -> Dict[str, Any]:
        buf = self.buffer
        return {
            "buffer_size": buf.size() if buf else 0,
            "buffer_capacity": buf.capacity if buf else 0,
            "terminated": sum(1 for w in self.workers if w.done),
            "workers": {w.name: {"state": w.state.value, "processed": w.processed} for w in self.workers},
        }

    def _worker_log(self):
        return self.log_session.logger if self.log_session else logger

    def __enter__(self) -> "Supervisor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(timeout=5.0)


__all__ = ["Supervisor"]

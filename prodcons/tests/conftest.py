"""
Pytest fixtures for the prodcons test suite.

Threaded tests never rely on sleeps for correctness: they join with generous
timeouts and assert that the join succeeded.
"""
import threading

import pytest
from loguru import logger

from prodcons.core.config import Settings


@pytest.fixture(scope="session")
def settings_fixture() -> Settings:
    """
    A small, fast configuration: tiny buffer, zero-ish delays, no log file.
    """
    return Settings(
        buffer_capacity=3,
        producer_count=2,
        consumer_count=2,
        producer_delay_ms=1,
        consumer_delay_ms=1,
        log_level="DEBUG",
        log_file=None,
    )


@pytest.fixture
def log_messages():
    """Collects every loguru message emitted during the test."""
    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)


@pytest.fixture
def spawn():
    """Start a daemon thread running ``fn``; results/exceptions land on the thread object."""
    threads = []

    def _spawn(fn, *args, **kwargs):
        t = threading.Thread(target=_capture, args=(fn, args, kwargs), daemon=True)
        t.result = None
        t.error = None
        threads.append(t)
        t.start()
        return t

    def _capture(fn, args, kwargs):
        t = threading.current_thread()
        try:
            t.result = fn(*args, **kwargs)
        except BaseException as e:  # surfaced to the test via t.error
            t.error = e

    yield _spawn
    for t in threads:
        t.join(timeout=5)

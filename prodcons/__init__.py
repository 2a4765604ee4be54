"""prodcons: bounded-buffer producer/consumer coordination.

One `BoundedBuffer` shared by producer and consumer `Worker` threads, started
and stopped by a `Supervisor`.
"""
from prodcons.buffer.bounded import BoundedBuffer
from prodcons.core.cancel import CancelToken
from prodcons.core.errors import Cancelled, ConfigError, InvalidCapacity, InvalidConfig, Timeout
from prodcons.live.supervisor import Supervisor
from prodcons.workers.worker import Role, Worker, WorkerState

__all__ = [
    "BoundedBuffer",
    "CancelToken",
    "Cancelled",
    "ConfigError",
    "InvalidCapacity",
    "InvalidConfig",
    "Timeout",
    "Supervisor",
    "Role",
    "Worker",
    "WorkerState",
]

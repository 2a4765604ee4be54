"""Runtime coordination: the supervisor that owns the buffer and workers."""

__all__ = [
    "Supervisor",
]

from .supervisor import Supervisor

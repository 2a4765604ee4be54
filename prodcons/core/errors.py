"""Exception taxonomy shared by the buffer, workers and supervisor.

``Cancelled`` and ``Timeout`` are recoverable and expected during normal
shutdown; the others are raised at construction/startup and are fatal to
whatever was being built.
"""


class ProdConsError(Exception):
    """Base class for all prodcons errors."""
    pass


class InvalidCapacity(ProdConsError, ValueError):
    """Raised when a buffer is constructed with capacity < 1."""
    pass


class ConfigError(ProdConsError):
    """Custom exception for configuration-related errors."""
    pass


class InvalidConfig(ConfigError):
    """Configuration values parsed but are out of range (counts, delays, capacity)."""
    pass


class Cancelled(ProdConsError):
    """A blocked put/take was woken by a cancellation request."""
    pass


class Timeout(ProdConsError, TimeoutError):
    """A put/take deadline expired before the buffer condition was met."""
    pass


__all__ = [
    "ProdConsError",
    "InvalidCapacity",
    "ConfigError",
    "InvalidConfig",
    "Cancelled",
    "Timeout",
]

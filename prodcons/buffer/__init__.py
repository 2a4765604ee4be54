from .bounded import BoundedBuffer

__all__ = ["BoundedBuffer"]

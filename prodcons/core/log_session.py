"""Explicit logging handle built on loguru.

Instead of a process-wide level and file handle, the supervisor and its
workers share a `LogSession`. The session adds its own console and file sinks
to loguru, filtered so they only see records emitted through the session's
bound logger, and removes them again on `close()`.

The file sink is append-only, one line per record. If it cannot be opened the
error is reported on the console and the session carries on console-only;
later write errors are caught by loguru itself (``catch=True``) and never
reach the caller.
"""
from __future__ import annotations
import itertools
import sys
from typing import Any, List, Optional, TextIO

from loguru import logger

_LEVELS = {"DEBUG": "DEBUG", "INFO": "INFO", "WARN": "WARNING", "WARNING": "WARNING", "ERROR": "ERROR"}
_TAGS = {"WARNING": "WARN"}
_session_ids = itertools.count(1)


def loguru_level(level: str) -> str:
    """Maps DEBUG/INFO/WARN/ERROR onto loguru level names."""
    try:
        return _LEVELS[str(level).upper()]
    except KeyError:
        raise ValueError(f"unsupported log level: {level!r}") from None


def _format(record) -> str:
    tag = _TAGS.get(record["level"].name, record["level"].name)
    return "[{time:YYYY-MM-DD HH:mm:ss}] [" + tag + "] {message}\n{exception}"


class LogSession:
    def __init__(
        self,
        level: str = "INFO",
        log_file: Optional[str] = "app.log",
        console: Optional[TextIO] = None,
    ):
        self.level = loguru_level(level)
        self.log_file = log_file
        self.session_id = next(_session_ids)
        self.logger = logger.bind(session=self.session_id)
        self._sink_ids: List[int] = []
        self._closed = False

        self._sink_ids.append(
            logger.add(
                console if console is not None else sys.stdout,
                level=self.level,
                format=_format,
                filter=self._owns,
                colorize=False,
            )
        )
        if log_file:
            try:
                self._sink_ids.append(
                    logger.add(
                        log_file,
                        level=self.level,
                        format=_format,
                        filter=self._owns,
                        mode="a",
                        encoding="utf-8",
                        catch=True,
                    )
                )
            except OSError as e:
                self.log_file = None
                self.logger.error(f"Failed to open log file {log_file}: {e}. Logging to console only.")

    def _owns(self, record) -> bool:
        return record["extra"].get("session") == self.session_id

    def bind(self, **extra: Any):
        """Return the session logger with extra context attached."""
        return self.logger.bind(**extra)

    def log(self, level: str, message: str) -> None:
        self.logger.log(loguru_level(level), message)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for sink_id in self._sink_ids:
            try:
                logger.remove(sink_id)
            except ValueError:
                # already removed, e.g. by a global logger.remove()
                pass
            except OSError as e:
                # the sink is detached before its file is closed; a failed final flush only gets reported
                logger.warning(f"Failed to close log file {self.log_file}: {e}")
        self._sink_ids.clear()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "LogSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["LogSession", "loguru_level"]

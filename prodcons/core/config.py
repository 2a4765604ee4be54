"""
Configuration loader for prodcons.

Settings come from a flat key/value source: a Java-style properties file
(``buffer.size=10``) or, for ``.yaml``/``.yml`` paths, a YAML document whose
nested mappings are flattened to the same dotted keys. Any key can be
overridden by an environment variable, e.g. ``PRODCONS_BUFFER__SIZE=4``
overrides ``buffer.size``.

Design Principles:
- Lenient values: a missing or malformed value never aborts startup. It falls
  back to the option's default and a warning is logged.
- Strict ranges: values that parse but make no sense (negative counts, zero
  capacity) fail validation of the pydantic `Settings` model, which is wrapped
  in `InvalidConfig`.
- Immutable result: `Settings` is frozen once loaded.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Mapping, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from prodcons.core.errors import ConfigError, InvalidConfig

ENV_PREFIX = "PRODCONS"
LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

LogLevel = Literal["DEBUG", "INFO", "WARN", "ERROR"]


class Settings(BaseModel):
    """Supervisor and logging settings, loaded once at startup."""
    model_config = ConfigDict(frozen=True)

    buffer_capacity: int = Field(10, ge=1)
    producer_count: int = Field(3, ge=0)
    consumer_count: int = Field(3, ge=0)
    producer_delay_ms: int = Field(100, ge=0)
    consumer_delay_ms: int = Field(150, ge=0)
    log_level: LogLevel = "INFO"
    log_file: Optional[str] = "app.log"

    @property
    def producer_delay(self) -> float:
        return self.producer_delay_ms / 1000.0

    @property
    def consumer_delay(self) -> float:
        return self.consumer_delay_ms / 1000.0


@dataclass(frozen=True)
class _Option:
    key: str
    field: str
    parse: Callable[[str], Any]


_INT_RE = re.compile(r"[+-]?[0-9]+")


def _parse_int(raw: str) -> int:
    # plain ASCII digits only: no "1_000", no non-ASCII numerals
    text = str(raw).strip()
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"not an integer: {raw!r}")
    return int(text)


def _parse_level(raw: str) -> str:
    level = str(raw).strip().upper()
    if level == "WARNING":
        level = "WARN"
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level {raw!r}")
    return level


def _parse_path(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


OPTIONS = (
    _Option("buffer.size", "buffer_capacity", _parse_int),
    _Option("producer.count", "producer_count", _parse_int),
    _Option("consumer.count", "consumer_count", _parse_int),
    _Option("producer.sleep.time", "producer_delay_ms", _parse_int),
    _Option("consumer.sleep.time", "consumer_delay_ms", _parse_int),
    _Option("log.level", "log_level", _parse_level),
    _Option("log.file", "log_file", _parse_path),
)


# --- Sources ---

_WS = " \t\f"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_UNICODE_RE = re.compile(r"[0-9a-fA-F]{4}")


def _logical_lines(text: str):
    """Joins lines ending in an odd number of backslashes with the next one."""
    pending = ""
    for line in text.splitlines():
        line = line.lstrip(_WS)
        if not pending and (not line or line[0] in "#!"):
            continue
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        yield pending + line
        pending = ""
    if pending:
        yield pending


def _unescape(s: str) -> str:
    out = []
    i = 0
    while i < len(s):
        c = s[i]
        if c != "\\":
            out.append(c)
            i += 1
            continue
        if i + 1 >= len(s):
            break
        nxt = s[i + 1]
        if nxt == "u" and _UNICODE_RE.fullmatch(s[i + 2:i + 6]):
            out.append(chr(int(s[i + 2:i + 6], 16)))
            i += 6
            continue
        out.append(_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def _split_entry(line: str):
    # key ends at the first unescaped '=', ':' or whitespace
    i, n = 0, len(line)
    while i < n:
        if line[i] == "\\":
            i += 2
            continue
        if line[i] in "=:" + _WS:
            break
        i += 1
    key = line[:i]
    j = i
    while j < n and line[j] in _WS:
        j += 1
    if j < n and line[j] in "=:":
        j += 1
        while j < n and line[j] in _WS:
            j += 1
    return _unescape(key), _unescape(line[j:])


def parse_properties(text: str) -> Dict[str, str]:
    """Parses Java-style properties text.

    Keys and values are separated by ``=``, ``:`` or whitespace; ``#`` and
    ``!`` start comments; a trailing backslash continues the line; ``\\t``,
    ``\\n``, ``\\uXXXX`` and friends are unescaped. A key with no separator
    maps to an empty value.
    """
    props: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_entry(line)
        if key:
            props[key] = value
    return props


def _flatten(d: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in d.items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, Mapping):
            out.update(_flatten(v, key))
        else:
            out[key] = v
    return out


def _load_source(path: Path) -> Dict[str, Any]:
    """Loads the key/value source; YAML for .yaml/.yml, properties otherwise."""
    if not path.is_file():
        raise ConfigError(f"Configuration file not found at: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read configuration file {path}: {e}") from e
    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing YAML file at {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise ConfigError(f"YAML file '{path}' must contain a mapping at the top level.")
        return _flatten(data)
    return parse_properties(text)


def _get_env_overrides(prefix: str = ENV_PREFIX) -> Dict[str, str]:
    """
    Maps environment variables onto dotted keys.
    e.g., PRODCONS_PRODUCER__SLEEP__TIME becomes 'producer.sleep.time'.
    """
    overrides: Dict[str, str] = {}
    for key, value in os.environ.items():
        if key.startswith(prefix + "_"):
            dotted = key.removeprefix(prefix).strip("_").lower().replace("__", ".")
            overrides[dotted] = value
    return overrides


def resolve_options(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Converts raw source values into `Settings` fields.

    Missing and malformed values are left out so the model default applies;
    either way a warning is logged.
    """
    defaults = Settings()
    resolved: Dict[str, Any] = {}
    for opt in OPTIONS:
        if opt.key not in raw:
            logger.warning(f"Missing key: {opt.key}. Using default: {getattr(defaults, opt.field)}")
            continue
        value = raw[opt.key]
        try:
            resolved[opt.field] = opt.parse(value)
        except (TypeError, ValueError):
            default = getattr(defaults, opt.field)
            logger.warning(f"Invalid value for key: {opt.key} ({value!r}). Using default: {default}")
    known = {opt.key for opt in OPTIONS}
    for key in sorted(set(raw) - known):
        logger.debug(f"Ignoring unknown config key: {key}")
    return resolved


def validate_settings(values: Mapping[str, Any]) -> Settings:
    """Validates field values, wrapping range errors in `InvalidConfig`."""
    try:
        return Settings.model_validate(dict(values))
    except ValidationError as e:
        error_details = e.errors()
        error_msg = f"Configuration validation failed with {len(error_details)} error(s):\n"
        for error in error_details:
            loc = " -> ".join(map(str, error['loc'])) if error['loc'] else "root"
            error_msg += f"  - Location: {loc}\n    Message: {error['msg']}\n"
        logger.error(error_msg)
        raise InvalidConfig("Failed to validate settings.") from e


# --- Public API ---

def load_settings(path: str = "config.properties") -> Settings:
    """
    Loads, validates, and returns the application settings.

    Steps:
    1. Read the key/value source at `path`.
    2. Apply `PRODCONS_*` environment overrides.
    3. Parse each known option, falling back to its default on bad values.
    4. Validate ranges with the `Settings` model.

    Raises:
        ConfigError: If the file is missing or cannot be parsed.
        InvalidConfig: If a parsed value is out of range.
    """
    logger.info(f"Loading settings from '{path}'...")
    raw = _load_source(Path(path))
    raw.update(_get_env_overrides())
    settings = validate_settings(resolve_options(raw))
    logger.info(
        "Configuration loaded: buffer_capacity={} producer_count={} consumer_count={} "
        "producer_delay_ms={} consumer_delay_ms={}",
        settings.buffer_capacity,
        settings.producer_count,
        settings.consumer_count,
        settings.producer_delay_ms,
        settings.consumer_delay_ms,
    )
    return settings


__all__ = [
    "Settings",
    "ConfigError",
    "InvalidConfig",
    "load_settings",
    "parse_properties",
    "resolve_options",
    "validate_settings",
]

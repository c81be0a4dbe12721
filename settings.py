from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_TIME_ZONE_ENV = "TELEMETRY_TIME_ZONE"
_LINE_DELIMITER_ENV = "SERIAL_LINE_DELIMITER"
_BAUD_RATE_ENV = "SERIAL_BAUD_RATE"
_STORE_DSN_ENV = "TELEMETRY_STORE_DSN"
_SERIAL_PORT_ENV = "SERIAL_PORT"
_SERIAL_MODE_ENV = "SERIAL_MODE"
_MAX_LINE_LENGTH_ENV = "SERIAL_MAX_LINE_LENGTH"
_RETRY_INTERVAL_ENV = "STORE_RETRY_INTERVAL"
_GATE_STARTUP_ENV = "STORE_GATE_STARTUP"
_HISTORY_LIMIT_ENV = "READING_HISTORY_LIMIT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

SERIAL_MODES = ("json", "relay")

# The legacy radar firmware terminates every frame with a literal period.
_MODE_DELIMITERS = {"json": "\n", "relay": "."}

_ESCAPES = {"\\n": "\n", "\\r\\n": "\r\n", "\\r": "\r", "\\t": "\t"}


@dataclass(frozen=True)
class Settings:
    time_zone: str
    line_delimiter: str
    baud_rate: int
    store_dsn: str
    serial_port: Optional[str]
    serial_mode: str
    max_line_length: int
    store_retry_interval: float
    store_gate_startup: bool
    reading_history_limit: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in ("1", "true", "yes", "on")


def _read_serial_mode(default: str) -> str:
    mode = _read_str_env(_SERIAL_MODE_ENV, default).lower()
    return mode if mode in SERIAL_MODES else default


def _read_delimiter(mode: str) -> str:
    # Not stripped: whitespace delimiters are legitimate.
    value = os.getenv(_LINE_DELIMITER_ENV)
    if not value:
        return _MODE_DELIMITERS[mode]
    return _ESCAPES.get(value, value)


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    serial_mode = _read_serial_mode("json")
    return Settings(
        time_zone=_read_str_env(_TIME_ZONE_ENV, "America/Manaus"),
        line_delimiter=_read_delimiter(serial_mode),
        baud_rate=_read_positive_int(_BAUD_RATE_ENV, 9600),
        store_dsn=_read_str_env(_STORE_DSN_ENV, "sqlite:///./tmp/telemetry.db"),
        serial_port=_read_optional_env(_SERIAL_PORT_ENV, None),
        serial_mode=serial_mode,
        max_line_length=_read_positive_int(_MAX_LINE_LENGTH_ENV, 4096),
        store_retry_interval=_read_positive_float(_RETRY_INTERVAL_ENV, 5.0),
        store_gate_startup=_read_bool(_GATE_STARTUP_ENV, False),
        reading_history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 50),
        log_level=_read_log_level("INFO"),
    )

"""Acceptance timestamps in the fixed reference time zone."""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from settings import get_settings

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@lru_cache
def _reference_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def format_timestamp(instant: datetime) -> str:
    """Render ``instant`` in the reference zone at second precision.

    Naive datetimes are taken to be UTC.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    zone = _reference_zone(get_settings().time_zone)
    return instant.astimezone(zone).strftime(TIMESTAMP_FORMAT)


def now() -> str:
    """Current wall-clock time as a reference-zone timestamp string."""
    return format_timestamp(datetime.now(timezone.utc))

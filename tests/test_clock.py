from __future__ import annotations

import re
from datetime import datetime, timezone

from services.clock import format_timestamp, now

_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


def test_format_uses_reference_zone() -> None:
    instant = datetime(2024, 1, 1, 12, 0, 5, tzinfo=timezone.utc)

    # America/Manaus is UTC-4 all year.
    assert format_timestamp(instant) == "2024-01-01 08:00:05"


def test_naive_instants_are_treated_as_utc() -> None:
    assert format_timestamp(datetime(2024, 1, 1, 2, 30)) == "2023-12-31 22:30:00"


def test_time_zone_comes_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_TIME_ZONE", "Asia/Tokyo")

    instant = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert format_timestamp(instant) == "2024-01-01 21:00:00"


def test_now_is_second_precision_and_current() -> None:
    before = format_timestamp(datetime.now(timezone.utc))
    stamp = now()
    after = format_timestamp(datetime.now(timezone.utc))

    assert _PATTERN.match(stamp)
    assert before <= stamp <= after

from __future__ import annotations

from typing import Iterator

import pytest

from datastore.connector import build_default_connector
from datastore.records import build_default_store
from services import clock
from services.broadcast import build_default_hub
from services.coordinator import build_default_coordinator
from services.serial_ingest import build_default_ingestor
from settings import get_settings

_ENV_VARS = (
    "TELEMETRY_TIME_ZONE",
    "SERIAL_LINE_DELIMITER",
    "SERIAL_BAUD_RATE",
    "TELEMETRY_STORE_DSN",
    "SERIAL_PORT",
    "SERIAL_MODE",
    "SERIAL_MAX_LINE_LENGTH",
    "STORE_RETRY_INTERVAL",
    "STORE_GATE_STARTUP",
    "READING_HISTORY_LIMIT",
    "LOG_LEVEL",
)

_CACHES = (
    get_settings,
    build_default_store,
    build_default_connector,
    build_default_hub,
    build_default_coordinator,
    build_default_ingestor,
    clock._reference_zone,
)


def _clear_caches() -> None:
    for cache in _CACHES:
        cache.cache_clear()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    _clear_caches()
    yield
    _clear_caches()

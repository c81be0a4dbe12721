from __future__ import annotations

from datastore.connector import build_default_connector
from datastore.records import SqlRecordStore
from settings import get_settings


def test_defaults() -> None:
    settings = get_settings()

    assert settings.time_zone == "America/Manaus"
    assert settings.line_delimiter == "\n"
    assert settings.baud_rate == 9600
    assert settings.serial_port is None
    assert settings.serial_mode == "json"
    assert settings.store_retry_interval == 5.0
    assert settings.store_gate_startup is False
    assert settings.reading_history_limit == 50


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    dsn = f"sqlite:///{tmp_path / 'telemetry.db'}"
    monkeypatch.setenv("TELEMETRY_TIME_ZONE", "UTC")
    monkeypatch.setenv("SERIAL_BAUD_RATE", "115200")
    monkeypatch.setenv("TELEMETRY_STORE_DSN", dsn)
    monkeypatch.setenv("SERIAL_PORT", " COM5 ")
    monkeypatch.setenv("STORE_RETRY_INTERVAL", "0.5")
    monkeypatch.setenv("STORE_GATE_STARTUP", "yes")
    monkeypatch.setenv("SERIAL_LINE_DELIMITER", "\\r\\n")

    settings = get_settings()
    connector = build_default_connector()

    assert settings.time_zone == "UTC"
    assert settings.baud_rate == 115200
    assert settings.serial_port == "COM5"
    assert settings.line_delimiter == "\r\n"
    assert settings.store_gate_startup is True
    assert connector.retry_interval == 0.5
    assert isinstance(connector.store, SqlRecordStore)
    assert connector.store.dsn == dsn


def test_relay_mode_defaults_to_period_delimiter(monkeypatch) -> None:
    monkeypatch.setenv("SERIAL_MODE", "RELAY")

    settings = get_settings()

    assert settings.serial_mode == "relay"
    assert settings.line_delimiter == "."


def test_invalid_values_fall_back(monkeypatch) -> None:
    monkeypatch.setenv("SERIAL_BAUD_RATE", "fast")
    monkeypatch.setenv("SERIAL_MODE", "binary")
    monkeypatch.setenv("READING_HISTORY_LIMIT", "-3")
    monkeypatch.setenv("STORE_RETRY_INTERVAL", "0")

    settings = get_settings()

    assert settings.baud_rate == 9600
    assert settings.serial_mode == "json"
    assert settings.reading_history_limit == 50
    assert settings.store_retry_interval == 5.0

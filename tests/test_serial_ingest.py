"""Tests for the serial intake adapter."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, List

from serial import SerialException

from datastore.records import InMemoryRecordStore
from services.broadcast import BroadcastHub, RawSocketSink
from services.coordinator import IngestionCoordinator
from services.serial_ingest import SerialIngestor
from settings import get_settings
from tests.fakes import FakeSerialReader, FakeSerialWriter, FakeWebSocket


class _Opener:
    def __init__(self, reader: Any = None, error: Exception | None = None) -> None:
        self.reader = reader
        self.writer = FakeSerialWriter()
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, **kwargs: Any):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reader, self.writer


def _ingestor(opener: _Opener, **overrides: Any):
    settings = replace(get_settings(), serial_port="/dev/ttyACM0", **overrides)
    store = InMemoryRecordStore()
    hub = BroadcastHub()
    coordinator = IngestionCoordinator(store=store, hub=hub, clock=lambda: "2024-05-01 10:00:00")
    return SerialIngestor(settings, coordinator, hub, opener=opener), store, hub


def test_json_frames_are_ingested_in_order() -> None:
    reader = FakeSerialReader(
        b'{"temperatura": 20, "umidade": 50, "lux": 100}\n{"temper',
        b'atura": oops}\n{"temperatura": 21, "umidade": 51, "lux": 101}\n',
    )
    opener = _Opener(reader)
    ingestor, store, _ = _ingestor(opener)

    async def scenario() -> None:
        await store.connect()
        await ingestor.run()

    asyncio.run(scenario())

    assert [row.temperature for row in store.sensor_rows] == [20.0, 21.0]
    assert opener.calls == [{"url": "/dev/ttyACM0", "baudrate": 9600}]
    assert opener.writer.closed is True


def test_store_outage_does_not_stop_the_stream(caplog) -> None:
    reader = FakeSerialReader(
        b'{"temperatura": 20, "umidade": 50, "lux": 100}\n'
        b'{"temperatura": 21, "umidade": 51, "lux": 101}\n'
    )
    ingestor, store, _ = _ingestor(_Opener(reader))

    async def scenario() -> int:
        store.available = False
        return await ingestor.consume(ingestor.framer_for(reader))

    with caplog.at_level(logging.ERROR):
        frames = asyncio.run(scenario())

    assert frames == 2
    assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 2


def test_open_failure_is_logged_once_without_retry(caplog) -> None:
    opener = _Opener(error=SerialException("could not open port COM5"))
    ingestor, _, _ = _ingestor(opener)

    with caplog.at_level(logging.ERROR, logger="services.serial_ingest"):
        asyncio.run(ingestor.run())

    assert len(opener.calls) == 1
    assert len(caplog.records) == 1
    assert "Could not open serial port" in caplog.records[0].getMessage()
    assert caplog.records[0].port == "/dev/ttyACM0"


def test_no_port_configured_skips_serial_intake() -> None:
    opener = _Opener(FakeSerialReader())
    ingestor, _, _ = _ingestor(opener)
    ingestor.settings = replace(ingestor.settings, serial_port=None)

    asyncio.run(ingestor.run())

    assert opener.calls == []


def test_relay_mode_forwards_raw_frames() -> None:
    reader = FakeSerialReader(b"45,120.", b"46,118.")
    ingestor, store, hub = _ingestor(_Opener(reader), serial_mode="relay", line_delimiter=".")

    async def scenario():
        await store.connect()
        sink = RawSocketSink(FakeWebSocket())
        hub.register(sink)
        await ingestor.run()
        return [sink._outbox.get_nowait() for _ in range(sink.pending)]

    relayed = asyncio.run(scenario())

    assert relayed == ["45,120", "46,118"]
    assert store.sensor_rows == []


def test_read_failure_is_logged(caplog) -> None:
    class _BrokenReader:
        async def read(self, _size: int) -> bytes:
            raise SerialException("device reports readiness to read but returned no data")

    opener = _Opener(_BrokenReader())
    ingestor, _, _ = _ingestor(opener)

    with caplog.at_level(logging.ERROR, logger="services.serial_ingest"):
        asyncio.run(ingestor.run())

    assert "Serial stream failed" in caplog.records[0].getMessage()
    assert opener.writer.closed is True


def test_stop_cancels_running_reader() -> None:
    opener = _Opener(FakeSerialReader(block_at_end=True))
    ingestor, _, _ = _ingestor(opener)

    async def scenario():
        task = ingestor.start()
        await asyncio.sleep(0.01)
        await ingestor.stop()
        return task

    task = asyncio.run(scenario())

    assert task.cancelled()
    assert opener.writer.closed is True

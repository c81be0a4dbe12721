"""Ingestion orchestration shared by the serial and HTTP intake paths."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable, List, Optional

from datastore.records import RecordStore, build_default_store
from models.records import AccessEvent, SensorReading, SensorSample
from services.broadcast import BroadcastHub, build_default_hub
from services.clock import now
from services.decoder import (
    RecordKind,
    apply_policy,
    decode_access,
    decode_sensor_line,
)
from services.errors import MalformedPayload, StoreUnavailable
from settings import get_settings

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    """Stamps, persists and broadcasts accepted records.

    Each record goes through decode, stamp, store and broadcast in that
    order; nothing is kept in memory once the record is handled.
    """

    def __init__(
        self,
        store: RecordStore,
        hub: BroadcastHub,
        clock: Callable[[], str] = now,
        history_limit: int = 50,
    ) -> None:
        self.store = store
        self.hub = hub
        self.clock = clock
        self.history_limit = history_limit

    async def ingest_sensor(self, sample: SensorSample, source: str = "http") -> SensorReading:
        """Persist a decoded sample and notify subscribers.

        Raises ``StoreUnavailable`` when the insert fails; nothing is
        broadcast in that case.
        """
        reading = SensorReading.from_sample(sample, timestamp=self.clock())
        try:
            stored = await self.store.insert_sensor(reading)
        except StoreUnavailable:
            logger.exception(
                "Failed to store sensor reading T=%s U=%s LUX=%s at %s",
                reading.temperature,
                reading.humidity,
                reading.lux,
                reading.timestamp,
                extra={"source": source},
            )
            raise

        logger.info(
            "Sensor reading stored: T=%s U=%s LUX=%s",
            stored.temperature,
            stored.humidity,
            stored.lux,
            extra={"source": source, "record_id": stored.record_id},
        )
        self.hub.publish(stored.to_payload())
        return stored

    async def ingest_serial_line(self, line: str) -> Optional[SensorReading]:
        """Serial adapter: never raises, there is no caller to report to."""
        try:
            sample = apply_policy(RecordKind.sensor, decode_sensor_line, line)
        except MalformedPayload as exc:
            logger.warning(
                "Discarding malformed serial frame: %s",
                exc,
                extra={"source": "serial", "raw_line": line},
            )
            return None
        if sample is None:
            return None
        try:
            return await self.ingest_sensor(sample, source="serial")
        except StoreUnavailable:
            return None

    async def ingest_access(
        self, name: Any, uid: Any, status: Any, photo: Any
    ) -> Optional[AccessEvent]:
        """Best-effort access registration; incomplete events vanish silently."""
        fields = apply_policy(RecordKind.access, decode_access, name, uid, status, photo)
        if fields is None:
            return None

        event = AccessEvent(
            name=fields.name,
            uid=fields.uid,
            status=fields.status,
            photo=fields.photo,
            timestamp=self.clock(),
        )
        try:
            stored = await self.store.insert_access(event)
        except StoreUnavailable:
            logger.exception(
                "Failed to register access for %s (uid %s)",
                event.name,
                event.uid,
                extra={"source": "access"},
            )
            return None

        logger.info(
            "Access registered: %s, UID: %s, Status: %s, at %s",
            stored.name,
            stored.uid,
            stored.status,
            stored.timestamp,
            extra={"source": "access", "record_id": stored.record_id},
        )
        return stored

    async def latest_access(self) -> Optional[AccessEvent]:
        return await self.store.latest_access()

    async def recent_readings(self, limit: Optional[int] = None) -> List[SensorReading]:
        return await self.store.recent_readings(limit or self.history_limit)


@lru_cache
def build_default_coordinator() -> IngestionCoordinator:
    """Factory that wires the coordinator with the configured store and hub."""
    return IngestionCoordinator(
        store=build_default_store(),
        hub=build_default_hub(),
        history_limit=get_settings().reading_history_limit,
    )

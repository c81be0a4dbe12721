"""Append-only persistence for sensor readings and access events."""

from __future__ import annotations

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from models.records import AccessEvent, SensorReading
from services.errors import StoreConnectFailure, StoreUnavailable
from settings import get_settings

logger = logging.getLogger(__name__)

MEMORY_DSN = "memory://"

T = TypeVar("T")

metadata = MetaData()

sensor_table = Table(
    "sensores",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("temperatura", Float, nullable=False),
    Column("umidade", Float, nullable=False),
    Column("lux", Float, nullable=False),
    Column("data_hora", String(19), nullable=False),
)

access_table = Table(
    "acessos",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("nome", String(255), nullable=False),
    Column("uid", String(64), nullable=False),
    Column("status", String(64), nullable=False),
    Column("foto", Text, nullable=False),
    Column("data_hora", String(19), nullable=False),
)


class RecordStore(ABC):
    """Durable store for readings and access events, queried by recency."""

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    @abstractmethod
    async def connect(self) -> None:
        """Open the store; raises ``StoreConnectFailure`` when unreachable."""

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def insert_sensor(self, reading: SensorReading) -> SensorReading:
        """Append one reading and return it with its sequence number."""

    @abstractmethod
    async def insert_access(self, event: AccessEvent) -> AccessEvent:
        """Append one access event and return it with its sequence number."""

    @abstractmethod
    async def latest_access(self) -> Optional[AccessEvent]:
        """Access event with the highest sequence number, if any."""

    @abstractmethod
    async def recent_readings(self, limit: int) -> List[SensorReading]:
        """The ``limit`` most recent readings, oldest first."""


def _reading_from_row(row: Any) -> SensorReading:
    return SensorReading(
        temperature=row["temperatura"],
        humidity=row["umidade"],
        lux=row["lux"],
        timestamp=row["data_hora"],
        record_id=row["id"],
    )


def _access_from_row(row: Any) -> AccessEvent:
    return AccessEvent(
        name=row["nome"],
        uid=row["uid"],
        status=row["status"],
        photo=row["foto"],
        timestamp=row["data_hora"],
        record_id=row["id"],
    )


class SqlRecordStore(RecordStore):
    """SQLAlchemy-backed store.

    The engine is synchronous; every round-trip runs in a worker thread so
    the event loop keeps serving other ingestion work meanwhile.
    """

    def __init__(self, dsn: str, **engine_options: Any) -> None:
        self.dsn = dsn
        self._engine_options = engine_options
        self._engine: Optional[Engine] = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    async def connect(self) -> None:
        if self._engine is not None:
            return
        try:
            self._engine = await asyncio.to_thread(self._open_engine)
        except (SQLAlchemyError, ImportError, OSError) as exc:
            raise StoreConnectFailure(f"Could not connect to record store: {exc}") from exc

    async def close(self) -> None:
        engine, self._engine = self._engine, None
        if engine is not None:
            await asyncio.to_thread(engine.dispose)

    async def insert_sensor(self, reading: SensorReading) -> SensorReading:
        return await self._run(self._insert_sensor, reading)

    async def insert_access(self, event: AccessEvent) -> AccessEvent:
        return await self._run(self._insert_access, event)

    async def latest_access(self) -> Optional[AccessEvent]:
        return await self._run(self._latest_access)

    async def recent_readings(self, limit: int) -> List[SensorReading]:
        return await self._run(self._recent_readings, limit)

    def _open_engine(self) -> Engine:
        url = make_url(self.dsn)
        options: Dict[str, Any] = {"pool_pre_ping": True}
        if url.get_backend_name() == "sqlite":
            options["connect_args"] = {"check_same_thread": False}
            if url.database and url.database != ":memory:":
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        options.update(self._engine_options)

        engine = create_engine(url, **options)
        try:
            metadata.create_all(engine)
        except SQLAlchemyError:
            engine.dispose()
            raise
        return engine

    async def _run(self, operation: Callable[..., T], *args: Any) -> T:
        engine = self._engine
        if engine is None:
            raise StoreUnavailable("Record store is not connected.")
        try:
            return await asyncio.to_thread(operation, engine, *args)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    @staticmethod
    def _insert_sensor(engine: Engine, reading: SensorReading) -> SensorReading:
        with engine.begin() as conn:
            result = conn.execute(
                sensor_table.insert().values(
                    temperatura=reading.temperature,
                    umidade=reading.humidity,
                    lux=reading.lux,
                    data_hora=reading.timestamp,
                )
            )
            record_id = result.inserted_primary_key[0]
        return replace(reading, record_id=record_id)

    @staticmethod
    def _insert_access(engine: Engine, event: AccessEvent) -> AccessEvent:
        with engine.begin() as conn:
            result = conn.execute(
                access_table.insert().values(
                    nome=event.name,
                    uid=event.uid,
                    status=event.status,
                    foto=event.photo,
                    data_hora=event.timestamp,
                )
            )
            record_id = result.inserted_primary_key[0]
        return replace(event, record_id=record_id)

    @staticmethod
    def _latest_access(engine: Engine) -> Optional[AccessEvent]:
        statement = select(access_table).order_by(access_table.c.id.desc()).limit(1)
        with engine.connect() as conn:
            row = conn.execute(statement).mappings().first()
        return _access_from_row(row) if row is not None else None

    @staticmethod
    def _recent_readings(engine: Engine, limit: int) -> List[SensorReading]:
        # LIMIT needs descending order; callers get ascending order back.
        latest = (
            select(sensor_table)
            .order_by(sensor_table.c.id.desc())
            .limit(limit)
            .subquery()
        )
        statement = select(latest).order_by(latest.c.id.asc())
        with engine.connect() as conn:
            rows = conn.execute(statement).mappings().all()
        return [_reading_from_row(row) for row in rows]


class InMemoryRecordStore(RecordStore):
    """Process-local store with the same sequencing rules as the SQL tables.

    ``fail_connects`` makes the next N ``connect()`` calls fail and
    ``available = False`` makes every call raise ``StoreUnavailable``.
    """

    def __init__(self, fail_connects: int = 0) -> None:
        self._sensors: List[SensorReading] = []
        self._access: List[AccessEvent] = []
        self._sensor_ids = itertools.count(1)
        self._access_ids = itertools.count(1)
        self._connected = False
        self.fail_connects = fail_connects
        self.connect_attempts = 0
        self.available = True

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def sensor_rows(self) -> List[SensorReading]:
        return list(self._sensors)

    @property
    def access_rows(self) -> List[AccessEvent]:
        return list(self._access)

    async def connect(self) -> None:
        self.connect_attempts += 1
        if self.fail_connects > 0:
            self.fail_connects -= 1
            raise StoreConnectFailure("In-memory store refused the connection.")
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def insert_sensor(self, reading: SensorReading) -> SensorReading:
        self._ensure_available()
        stored = replace(reading, record_id=next(self._sensor_ids))
        self._sensors.append(stored)
        return stored

    async def insert_access(self, event: AccessEvent) -> AccessEvent:
        self._ensure_available()
        stored = replace(event, record_id=next(self._access_ids))
        self._access.append(stored)
        return stored

    async def latest_access(self) -> Optional[AccessEvent]:
        self._ensure_available()
        return self._access[-1] if self._access else None

    async def recent_readings(self, limit: int) -> List[SensorReading]:
        self._ensure_available()
        if limit <= 0:
            return []
        return list(self._sensors[-limit:])

    def _ensure_available(self) -> None:
        if not self._connected or not self.available:
            raise StoreUnavailable("In-memory store is unavailable.")


@lru_cache
def build_default_store(dsn: Optional[str] = None) -> RecordStore:
    store_dsn = get_settings().store_dsn if dsn is None else dsn
    if store_dsn == MEMORY_DSN:
        return InMemoryRecordStore()
    return SqlRecordStore(store_dsn)

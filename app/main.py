from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.realtime import router as realtime_router
from app.web import router as web_router
from datastore.connector import build_default_connector
from datastore.records import build_default_store
from logging_config import configure_logging
from services.broadcast import build_default_hub
from services.coordinator import build_default_coordinator
from services.serial_ingest import build_default_ingestor
from settings import get_settings

_FACTORIES = (
    build_default_ingestor,
    build_default_coordinator,
    build_default_connector,
    build_default_store,
    build_default_hub,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    connector = build_default_connector()
    if settings.store_gate_startup:
        await connector.run()
    else:
        connector.start_background()
    ingestor = build_default_ingestor()
    ingestor.start()
    try:
        yield
    finally:
        await ingestor.stop()
        await connector.stop()
        for factory in _FACTORIES:
            factory.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Telemetry Hub",
        description="Ingests sensor readings and access events and streams readings live.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(web_router)
    app.include_router(realtime_router)
    return app

app = create_app()

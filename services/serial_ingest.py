"""Serial intake: frames from the attached microcontroller into the pipeline."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, AsyncIterable, Awaitable, Callable, Optional, Tuple

import serial_asyncio
from serial import SerialException

from services.broadcast import BroadcastHub, build_default_hub
from services.coordinator import IngestionCoordinator, build_default_coordinator
from services.errors import TransportOpenFailure
from services.framer import LineFramer
from settings import Settings, get_settings

logger = logging.getLogger(__name__)

Opener = Callable[..., Awaitable[Tuple[asyncio.StreamReader, Any]]]


class SerialIngestor:
    """Reads one serial device for the lifetime of the process.

    The port is opened once. If that fails the error is logged and serial
    intake stays off; HTTP intake is unaffected.
    """

    def __init__(
        self,
        settings: Settings,
        coordinator: IngestionCoordinator,
        hub: BroadcastHub,
        opener: Optional[Opener] = None,
        chunk_size: int = 256,
    ) -> None:
        self.settings = settings
        self.coordinator = coordinator
        self.hub = hub
        self._opener = opener or serial_asyncio.open_serial_connection
        self.chunk_size = chunk_size
        self._writer: Any = None
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def log_context(self) -> dict[str, Any]:
        return {"port": self.settings.serial_port, "baud_rate": self.settings.baud_rate}

    async def open(self) -> Optional[asyncio.StreamReader]:
        try:
            reader, writer = await self._opener(
                url=self.settings.serial_port,
                baudrate=self.settings.baud_rate,
            )
        except (SerialException, OSError, ValueError) as exc:
            failure = TransportOpenFailure(f"Could not open serial port: {exc}")
            logger.error("%s", failure, extra=self.log_context)
            return None
        self._writer = writer
        logger.info("Serial port open", extra=self.log_context)
        return reader

    def framer_for(self, reader: asyncio.StreamReader) -> LineFramer:
        async def read_chunk() -> bytes:
            return await reader.read(self.chunk_size)

        return LineFramer(
            read_chunk,
            delimiter=self.settings.line_delimiter,
            max_line_length=self.settings.max_line_length,
        )

    async def consume(self, frames: AsyncIterable[str]) -> int:
        """Handle frames in arrival order; returns how many were seen."""
        count = 0
        async for frame in frames:
            count += 1
            if self.settings.serial_mode == "relay":
                logger.debug("Relaying serial frame", extra={"raw_line": frame})
                self.hub.relay(frame)
            else:
                await self.coordinator.ingest_serial_line(frame)
        return count

    async def run(self) -> None:
        if not self.settings.serial_port:
            logger.info("No serial port configured; serial intake disabled")
            return
        reader = await self.open()
        if reader is None:
            return
        try:
            frames = await self.consume(self.framer_for(reader))
        except (SerialException, OSError) as exc:
            logger.error("Serial stream failed: %s", exc, extra=self.log_context)
        else:
            logger.warning(
                "Serial stream ended after %d frames", frames, extra=self.log_context
            )
        finally:
            self._close_writer()

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="serial-ingest")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._close_writer()

    def _close_writer(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()


@lru_cache
def build_default_ingestor() -> SerialIngestor:
    return SerialIngestor(
        settings=get_settings(),
        coordinator=build_default_coordinator(),
        hub=build_default_hub(),
    )

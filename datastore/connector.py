"""Reconnection loop for the record store."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from functools import lru_cache
from typing import Awaitable, Callable, Optional

from datastore.records import RecordStore, build_default_store
from services.errors import StoreConnectFailure
from settings import get_settings

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ConnectionState(str, Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    connected = "connected"


class StoreConnector:
    """Keeps trying to connect the store at a fixed interval.

    There is no attempt limit and the interval never grows.
    """

    def __init__(
        self,
        store: RecordStore,
        retry_interval: float = 5.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.store = store
        self.retry_interval = retry_interval
        self._sleep = sleep
        self.state = ConnectionState.disconnected
        self.attempts = 0
        self._task: Optional[asyncio.Task[None]] = None

    async def connect_once(self) -> bool:
        self.attempts += 1
        self.state = ConnectionState.connecting
        try:
            await self.store.connect()
        except StoreConnectFailure as exc:
            self.state = ConnectionState.disconnected
            logger.error(
                "Record store connection failed: %s",
                exc,
                extra={"attempt": self.attempts, "state": self.state.value},
            )
            return False
        self.state = ConnectionState.connected
        logger.info(
            "Connected to record store",
            extra={"attempt": self.attempts, "state": self.state.value},
        )
        return True

    async def run(self) -> None:
        """Return once connected, sleeping ``retry_interval`` between attempts."""
        while not await self.connect_once():
            await self._sleep(self.retry_interval)

    def start_background(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="store-connector")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self.store.close()
        self.state = ConnectionState.disconnected


@lru_cache
def build_default_connector() -> StoreConnector:
    return StoreConnector(
        store=build_default_store(),
        retry_interval=get_settings().store_retry_interval,
    )

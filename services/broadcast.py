"""Fan-out of accepted readings to live websocket subscribers."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)

SENSOR_EVENT = "sensor_update"


class Channel(str, Enum):
    room = "room"
    raw = "raw"


class Delivery(str, Enum):
    delivered = "delivered"
    skipped = "skipped"


class SubscriberSink(ABC):
    """One live subscriber on one channel.

    ``try_send`` never blocks: accepted messages go to a bounded outbox that
    ``pump`` drains onto the socket from the subscriber's own task.
    """

    channel: Channel

    def __init__(self, websocket: WebSocket, max_pending: int = 100) -> None:
        self.websocket = websocket
        self._outbox: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_pending)

    @property
    def pending(self) -> int:
        return self._outbox.qsize()

    @abstractmethod
    def try_send(self, payload: Any) -> Delivery: ...

    @abstractmethod
    async def _transmit(self, message: Any) -> None: ...

    def _enqueue(self, message: Any) -> Delivery:
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            return Delivery.skipped
        return Delivery.delivered

    async def pump(self) -> None:
        while True:
            message = await self._outbox.get()
            await self._transmit(message)


class RoomSink(SubscriberSink):
    """Named-event channel: queue unconditionally, drop only when full."""

    channel = Channel.room

    def __init__(
        self, websocket: WebSocket, event: str = SENSOR_EVENT, max_pending: int = 100
    ) -> None:
        super().__init__(websocket, max_pending=max_pending)
        self.event = event

    def try_send(self, payload: Any) -> Delivery:
        return self._enqueue({"event": self.event, "data": payload})

    async def _transmit(self, message: Any) -> None:
        await self.websocket.send_json(message)


class RawSocketSink(SubscriberSink):
    """Plain text channel: a socket that is not open right now is skipped."""

    channel = Channel.raw

    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def try_send(self, payload: Any) -> Delivery:
        if not self.is_open():
            return Delivery.skipped
        text = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
        return self._enqueue(text)

    async def _transmit(self, message: Any) -> None:
        await self.websocket.send_text(message)


@dataclass
class FanOutReport:
    delivered: int = 0
    skipped: int = 0


class BroadcastHub:
    """Registry of subscribers on both channels."""

    def __init__(self) -> None:
        self._sinks: Dict[Channel, Set[SubscriberSink]] = {
            Channel.room: set(),
            Channel.raw: set(),
        }

    def register(self, sink: SubscriberSink) -> None:
        self._sinks[sink.channel].add(sink)
        logger.debug("Subscriber connected", extra={"channel": sink.channel.value})

    def unregister(self, sink: SubscriberSink) -> None:
        self._sinks[sink.channel].discard(sink)
        logger.debug("Subscriber disconnected", extra={"channel": sink.channel.value})

    def subscriber_count(self, channel: Optional[Channel] = None) -> int:
        if channel is not None:
            return len(self._sinks[channel])
        return sum(len(sinks) for sinks in self._sinks.values())

    def publish(self, payload: Dict[str, Any]) -> FanOutReport:
        """Offer ``payload`` to every subscriber on both channels."""
        report = FanOutReport()
        for channel in (Channel.room, Channel.raw):
            self._offer(channel, payload, report)
        logger.debug(
            "Broadcast sensor payload",
            extra={"delivered": report.delivered, "skipped": report.skipped},
        )
        return report

    def relay(self, text: str) -> FanOutReport:
        """Forward undecoded text to the raw channel only."""
        report = FanOutReport()
        self._offer(Channel.raw, text, report)
        return report

    def _offer(self, channel: Channel, payload: Any, report: FanOutReport) -> None:
        for sink in list(self._sinks[channel]):
            try:
                outcome = sink.try_send(payload)
            except Exception:  # noqa: BLE001 - a broken subscriber must not reach ingestion
                logger.debug(
                    "Subscriber rejected payload",
                    exc_info=True,
                    extra={"channel": channel.value},
                )
                outcome = Delivery.skipped
            if outcome is Delivery.delivered:
                report.delivered += 1
            else:
                report.skipped += 1


@lru_cache
def build_default_hub() -> BroadcastHub:
    return BroadcastHub()

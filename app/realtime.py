"""Websocket endpoints for live subscribers."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket

from services.broadcast import (
    BroadcastHub,
    RawSocketSink,
    RoomSink,
    SubscriberSink,
    build_default_hub,
)

GREETING = "Conexão estabelecida com o servidor via WebSocket"

router = APIRouter()


def get_hub() -> BroadcastHub:
    return build_default_hub()


async def _serve(
    websocket: WebSocket,
    sink: SubscriberSink,
    hub: BroadcastHub,
    greeting: Optional[str] = None,
) -> None:
    """Greet, then drain the sink until the client goes away and unregister it."""
    # The greeting must be the first frame, ahead of any broadcast.
    if greeting is not None:
        await websocket.send_text(greeting)
    hub.register(sink)
    pump = asyncio.create_task(sink.pump())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        hub.unregister(sink)
        pump.cancel()
        # A pump that died on a closed socket is expected here.
        await asyncio.gather(pump, return_exceptions=True)


@router.websocket("/ws")
async def raw_socket(websocket: WebSocket, hub: BroadcastHub = Depends(get_hub)) -> None:
    await websocket.accept()
    await _serve(websocket, RawSocketSink(websocket), hub, greeting=GREETING)


@router.websocket("/ws/eventos")
async def event_channel(websocket: WebSocket, hub: BroadcastHub = Depends(get_hub)) -> None:
    await websocket.accept()
    await _serve(websocket, RoomSink(websocket), hub)

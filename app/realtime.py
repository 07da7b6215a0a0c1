"""WebSocket transport for live observers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from app.api import get_service
from app.schemas import reading_payload
from services.hub import HubMessage, QueueObserver
from services.telemetry import TelemetryService
from settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _encode(message: HubMessage) -> Dict[str, Any]:
    if isinstance(message.data, list):
        data: Any = [reading_payload(reading) for reading in message.data]
    else:
        data = reading_payload(message.data)
    return {"event": message.event, "data": data}


async def _drain_client(websocket: WebSocket) -> None:
    # Client frames carry no meaning; wait for the disconnect.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def telemetry_stream(
    websocket: WebSocket,
    service: TelemetryService = Depends(get_service),
) -> None:
    await websocket.accept()

    async def deliver(message: HubMessage) -> None:
        await websocket.send_json(_encode(message))

    observer = QueueObserver(deliver, queue_size=get_settings().observer_queue_size)
    await service.hub.connect(observer)

    pump = asyncio.create_task(observer.pump())
    listener = asyncio.create_task(_drain_client(websocket))
    try:
        done, _ = await asyncio.wait({pump, listener}, return_when=asyncio.FIRST_COMPLETED)
        if pump in done and pump.exception() is None:
            # The hub dropped this observer; tell the client to reconnect.
            await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
    except WebSocketDisconnect:
        pass
    finally:
        service.hub.disconnect(observer)
        observer.close()
        for task in (pump, listener):
            task.cancel()
        await asyncio.gather(pump, listener, return_exceptions=True)

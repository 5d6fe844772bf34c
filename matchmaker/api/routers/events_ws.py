import asyncio

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from matchmaker.api.dependency import Matchmaker
from matchmaker.domain.signaling.events import SignalEvent
from matchmaker.shared.domain.clock import dt_to_ms

router = APIRouter(tags=["events"])


def event_message(event: SignalEvent) -> dict:
    return {
        "type": event.type.value,
        "code": event.code,
        "isFixed": event.is_fixed,
        "at": dt_to_ms(event.at),
    }


@router.websocket("/ws")
async def events_feed(websocket: WebSocket, service: Matchmaker):
    """Live feed of signaling events, preceded by a snapshot of live codes."""
    await websocket.accept()
    queue = service.events.open_queue()

    async def send_events():
        await websocket.send_json({"type": "snapshot", "codes": await service.live_codes()})
        while True:
            event = await queue.get()
            await websocket.send_json(event_message(event))

    async def wait_disconnect():
        # Incoming messages are ignored; this only notices the close
        while True:
            await websocket.receive_text()

    tasks = [asyncio.create_task(send_events()), asyncio.create_task(wait_disconnect())]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Event feed closed on error: {}", exc)
    finally:
        for task in tasks:
            task.cancel()
        # Collect the cancelled tasks so none is left pending
        await asyncio.gather(*tasks, return_exceptions=True)
        service.events.close_queue(queue)
        logger.debug("Event feed client disconnected")

"""WebSocket endpoint for live batch progress.

Every progress and completion event published while a client is connected
is forwarded as JSON. Events published before the client subscribed are
not replayed, and events that overflow a slow client's queue are dropped.
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voicenotes.services.events import Subscription, get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    async for event in subscription:
        await websocket.send_json(event.model_dump(mode="json"))


@router.websocket("/ws/progress")
async def progress_ws(websocket: WebSocket) -> None:
    """Stream batch events to the client until it disconnects.

    Protocol:
        - Server sends: ``{"type": "connected"}`` once, then
          ``{"type": "progress", ...}`` per step and
          ``{"type": "complete", "total": N}`` at the end of a batch.
        - Client messages are read only to detect disconnects.
    """
    await websocket.accept()
    logger.info("Progress WebSocket connected")
    await websocket.send_json({"type": "connected"})

    subscription = get_broadcaster().subscribe()
    sender = asyncio.create_task(_forward(websocket, subscription))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("Progress WebSocket disconnected")
    finally:
        subscription.close()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.warning("Progress WebSocket send failed", exc_info=True)

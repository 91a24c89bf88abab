from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter()


@router.websocket("/ws")
async def overlay_events(websocket: WebSocket):
    """Live drain events for the overlay. Inbound messages are ignored."""
    hub = websocket.app.state.ctx.hub
    await websocket.accept()
    client_id = await hub.add(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.remove(client_id)

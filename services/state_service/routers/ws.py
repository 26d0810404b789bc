from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from libs.event_bus.bus import STATE_TOPIC
from .http import envelope

router = APIRouter()


@router.websocket("/ws/status")
async def ws_status(ws: WebSocket):
    # Sends the current snapshot, then every snapshot written through POST.
    await ws.accept()
    bus = ws.app.state.bus
    # subscribe first so no POST between the snapshot and the subscription is missed
    await bus.subscribe(STATE_TOPIC, ws)
    try:
        snap = ws.app.state.store.current()
        await ws.send_json(envelope(STATE_TOPIC, {
            "revision": snap.revision,
            "epoch": snap.epoch,
            "state": snap.state.to_dict(),
        }))
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await bus.unsubscribe(STATE_TOPIC, ws)

import logging
from typing import Any

from fastapi import APIRouter, Body, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from libs.car_state import Action
from libs.event_bus.bus import STATE_TOPIC
from libs.log.tracing import new_id, now_iso, now_ms
from libs.schema_utils.validate import SchemaValidationError, validate_or_raise
from ..storage import StoredSnapshot

_logger = logging.getLogger(__name__)

router = APIRouter()

REVISION_HEADER = "X-State-Revision"
EPOCH_HEADER = "X-State-Epoch"


def envelope(typ: str, payload: dict):
    return {
        "meta": {
            "message_id": new_id("m_"),
            "timestamp_ms": now_ms(),
            "source": "state",
            "type": typ,
        },
        "payload": payload,
    }


def _headers(snap: StoredSnapshot) -> dict:
    return {REVISION_HEADER: str(snap.revision), EPOCH_HEADER: snap.epoch}


async def _publish(request: Request, snap: StoredSnapshot) -> None:
    await request.app.state.bus.publish(STATE_TOPIC, envelope(STATE_TOPIC, {
        "revision": snap.revision,
        "epoch": snap.epoch,
        "state": snap.state.to_dict(),
    }))


def _mutation_response(response: Response, snap: StoredSnapshot) -> dict:
    response.headers.update(_headers(snap))
    return {"success": True, "state": snap.state.to_dict(), "revision": snap.revision}


@router.get("/health")
def health():
    return {"status": "ok", "timestamp": now_iso()}


@router.get("/status")
def get_status(request: Request):
    snap = request.app.state.store.reload()
    return JSONResponse(content=snap.state.to_dict(), headers=_headers(snap))


@router.post("/status")
async def post_status(request: Request, response: Response, req: Any = Body(...)):
    try:
        validate_or_raise("schemas/car_state/state_patch.schema.json", req)
    except SchemaValidationError as e:
        response.status_code = 400
        return {"success": False, "error": f"bad request: {e}"}

    # the store locks and writes the file synchronously
    snap = await run_in_threadpool(request.app.state.store.merge, req)
    _logger.info("status merged: %s (revision %d)", ", ".join(sorted(req)) or "-", snap.revision)
    await _publish(request, snap)
    return _mutation_response(response, snap)


@router.post("/action")
async def post_action(request: Request, response: Response, req: Any = Body(...)):
    try:
        validate_or_raise("schemas/car_state/action.schema.json", req)
    except SchemaValidationError as e:
        response.status_code = 400
        return {"success": False, "error": f"bad request: {e}"}

    act = Action.from_dict(req)
    if act.kind is None:
        _logger.info("ignoring unknown action %s", act.type)
    snap = await run_in_threadpool(request.app.state.store.apply_action, act)
    _logger.info("action %s applied (revision %d)", act.type, snap.revision)
    await _publish(request, snap)
    return _mutation_response(response, snap)

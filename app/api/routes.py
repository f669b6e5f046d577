from __future__ import annotations

import json
import logging

import redis
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from app.api.deps import get_redis
from app.auth_store import user_for_token
from app.config import auth_required
from app.core.id_pool import PoolExhausted
from app.protocol import parse_frame
from app.session_hub import hub, new_session_key

logger = logging.getLogger(__name__)

router = APIRouter()

ROOM_FULL_CLOSE_CODE = 4000
UNAUTHORIZED_CLOSE_CODE = 4401


def _frame_text(message: dict) -> str:
    text = message.get("text")
    if text is not None:
        return text
    data = message.get("bytes")
    if data is None:
        raise ValueError("empty frame")
    # UnicodeDecodeError is a ValueError.
    return data.decode("utf-8")


@router.websocket("/ws/{room_name}")
async def room_ws(
    websocket: WebSocket,
    room_name: str,
    token: str | None = None,
    r: redis.Redis = Depends(get_redis),
) -> None:
    identity = user_for_token(r=r, token=token) if token else None
    if identity is None and auth_required():
        logger.info("refusing connection to room %s: missing or unknown token", room_name)
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return

    await websocket.accept()
    key = new_session_key()
    options = {k: v for k, v in websocket.query_params.items() if k != "token"}

    try:
        await hub.join(room_name, key, websocket, identity=identity, options=options)
    except PoolExhausted as e:
        logger.warning("refusing %s in room %s: %s", key, room_name, e)
        await websocket.close(code=ROOM_FULL_CLOSE_CODE, reason="room is full")
        return

    consented = False
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            try:
                kind, payload = parse_frame(json.loads(_frame_text(message)))
            except ValueError as e:
                logger.warning("dropping malformed frame from %s: %s", key, e)
                continue
            await hub.dispatch(room_name, key, kind, payload)
    except WebSocketDisconnect as e:
        consented = e.code == 1000
    finally:
        await hub.leave(room_name, key, consented=consented)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}

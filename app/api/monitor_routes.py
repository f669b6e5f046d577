from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from app.api.models import RoomDetail, RoomListResponse, RoomSummary
from app.session_hub import hub

router = APIRouter(prefix="/colyseus", tags=["monitor"])


@router.get("/api", response_model=RoomListResponse)
async def list_rooms_route() -> RoomListResponse:
    return RoomListResponse(rooms=[RoomSummary.model_validate(s.describe()) for s in hub.rooms()])


@router.get("/api/room/{room_id}", response_model=RoomDetail)
async def room_detail_route(room_id: str) -> RoomDetail:
    """Debug view of one room: members, ids, tiles, spawns and replicated state."""

    session = hub.get(room_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return RoomDetail.model_validate(session.describe())

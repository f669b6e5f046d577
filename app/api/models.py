from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    # bcrypt only looks at the first 72 bytes.
    password: str = Field(..., min_length=1, max_length=72)


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., max_length=72)


class AnonymousRequest(BaseModel):
    options: dict[str, Any] = Field(default_factory=dict)


class AuthUser(BaseModel):
    """Identity attached to a connection. Anonymous users may carry extra client options."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    email: str | None = None
    name: str | None = None
    anonymous: bool = False
    anonymous_id: int | None = Field(default=None, alias="anonymousId")


class StoredUser(AuthUser):
    password_hash: str


class AuthResponse(BaseModel):
    user: AuthUser
    token: str


class UserDataResponse(BaseModel):
    user: AuthUser


class RoomSummary(BaseModel):
    room_id: str
    phase: str
    clients: int
    max_clients: int


class RoomListResponse(BaseModel):
    rooms: list[RoomSummary]


class RoomDetail(RoomSummary):
    # session key -> player id
    players: dict[str, int]
    available_ids: list[int]

    # owner key -> claimed tiles
    tiles: dict[str, list[dict[str, int]]]
    spawns: dict[str, int]
    available_spawn_spots: list[int]

    # Replicated state as clients see it.
    state: dict[str, Any]

"""Inbound wire protocol.

Frames are JSON objects `{"type": <kind>, "payload": {...}}`. Each kind has a
pydantic model; wire field names are kept as the clients send them and exposed
under snake_case attribute names.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from app.core.spawns import SPAWN_SLOTS


class MalformedPayload(ValueError):
    pass


def _owner_from_wire(value: Any) -> Any:
    # Clients send the owner id either as "2" or 2 (sometimes 2.0).
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return str(value)
    return value


OwnerField = Annotated[str, BeforeValidator(_owner_from_wire)]

# Ids that are only echoed back; kept as whatever type the client used.
WireId = str | int | float


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class LightMessage(InboundMessage):
    id: int | float
    prev: int | float


class TileTakenMessage(InboundMessage):
    owner: OwnerField = Field(alias="id")
    xx: int
    yy: int


class PositionMessage(InboundMessage):
    id: WireId | None = None
    x: float
    z: float
    rotation_y: float = Field(alias="rotationY")
    right_blinker: bool | None = Field(default=None, alias="rightBlinker")
    left_blinker: bool | None = Field(default=None, alias="leftBlinker")
    is_horizontal: bool | None = Field(default=None, alias="isHorizontal")
    has_priority: bool | None = Field(default=None, alias="hasPriority")
    turning: str | None = None
    speed: float | None = None
    entrance: float | None = None
    name: str | None = None


class CarPositionMessage(InboundMessage):
    car_id: WireId | None = Field(default=None, alias="carID")
    x: float
    z: float
    rotation_y: float = Field(alias="rotationY")
    right_blinker: bool | None = Field(default=None, alias="rightBlinker")
    left_blinker: bool | None = Field(default=None, alias="leftBlinker")


class IdMessage(InboundMessage):
    """`intersection` / `player_leave`: the id is only echoed."""

    id: WireId | None = None


class DeathMessage(InboundMessage):
    owner: OwnerField = Field(alias="id")


class SpawnMessage(InboundMessage):
    owner: OwnerField = Field(alias="id")
    spawn: int = Field(ge=min(SPAWN_SLOTS), le=max(SPAWN_SLOTS))


class SpawningMessage(InboundMessage):
    player_id: WireId = Field(alias="playerID")


INBOUND_MODELS: dict[str, type[InboundMessage]] = {
    "light": LightMessage,
    "tileTaken": TileTakenMessage,
    "position": PositionMessage,
    "car_position": CarPositionMessage,
    "intersection": IdMessage,
    "death": DeathMessage,
    "player_leave": IdMessage,
    "spawn": SpawnMessage,
    "spawning": SpawningMessage,
}


def parse_inbound(kind: str, payload: Any) -> InboundMessage:
    model = INBOUND_MODELS.get(kind)
    if model is None:
        raise MalformedPayload(f"Unknown message type: {kind!r}")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise MalformedPayload(f"{kind}: payload must be an object")
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayload(f"{kind}: {e.error_count()} invalid field(s): {e.errors()[0]['msg']}") from e


def parse_frame(frame: Any) -> tuple[str, Any]:
    """Split a raw `{"type", "payload"}` frame into (kind, payload)."""

    if not isinstance(frame, dict):
        raise MalformedPayload("frame must be a JSON object")
    kind = frame.get("type")
    if not isinstance(kind, str) or not kind:
        raise MalformedPayload("frame is missing 'type'")
    return kind, frame.get("payload")

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, NewType

from pydantic import BaseModel, ConfigDict, Field

SessionKey = NewType("SessionKey", str)

PatchOp = Literal["add", "replace", "remove"]


class PlayerState(BaseModel):
    """Replicated per-player fields. Only the `position` handler writes these."""

    model_config = ConfigDict(populate_by_name=True)

    x: float = 0
    z: float = 0
    rotation_y: float = Field(default=0, alias="rotationY")


@dataclass(frozen=True, slots=True)
class StatePatch:
    op: PatchOp
    key: SessionKey
    value: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"op": self.op, "path": f"players/{self.key}"}
        if self.value is not None:
            out["value"] = self.value
        return out


class RoomState:
    """Server-authoritative players map mirrored to clients as patches.

    Every mutation records a patch; the session drains them after each handler
    and broadcasts them as one `state_patch` message.
    """

    def __init__(self) -> None:
        self.players: dict[SessionKey, PlayerState] = {}
        self._pending: list[StatePatch] = []

    def add_player(self, key: SessionKey) -> PlayerState:
        player = PlayerState()
        self.players[key] = player
        self._pending.append(StatePatch(op="add", key=key, value=player.model_dump(by_alias=True)))
        return player

    def move_player(self, key: SessionKey, *, x: float, z: float, rotation_y: float) -> PlayerState | None:
        player = self.players.get(key)
        if player is None:
            return None
        player.x = x
        player.z = z
        player.rotation_y = rotation_y
        self._pending.append(StatePatch(op="replace", key=key, value=player.model_dump(by_alias=True)))
        return player

    def remove_player(self, key: SessionKey) -> None:
        if self.players.pop(key, None) is not None:
            self._pending.append(StatePatch(op="remove", key=key))

    def snapshot(self) -> dict[str, Any]:
        return {"players": {k: p.model_dump(by_alias=True) for k, p in self.players.items()}}

    def drain_patches(self) -> list[StatePatch]:
        patches, self._pending = self._pending, []
        return patches

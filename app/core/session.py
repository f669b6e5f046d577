from __future__ import annotations

import logging
import math
from typing import Any, ClassVar

from app.core.events import Outbound, broadcast, directed
from app.core.id_pool import MAX_PLAYERS, IdPool, PlayerId
from app.core.spawns import SpawnRegistry
from app.core.state import RoomState, SessionKey
from app.core.tiles import TileOwnership, owner_key
from app.fsm import SessionLifecycle
from app.protocol import (
    CarPositionMessage,
    DeathMessage,
    IdMessage,
    InboundMessage,
    LightMessage,
    MalformedPayload,
    PositionMessage,
    SpawningMessage,
    SpawnMessage,
    TileTakenMessage,
    parse_inbound,
)

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome to Colyseus!"


class SessionClosed(RuntimeError):
    pass


class Session:
    """One game room: its members and the bookkeeping tying them together.

    All handlers are synchronous and return the outbound messages they produced,
    in the order they must be delivered. The caller is responsible for running
    handlers of one session serially.

    Bookkeeping owned here:
    - `id_pool`: player ids 1..capacity, lowest free id first
    - `tiles`: owner key -> claimed tiles; a tile has at most one owner
    - `spawns`: owner key -> last reported spawn slot
    - `state`: replicated players map keyed by session key
    """

    _handlers: ClassVar[dict[str, str]] = {
        "light": "_on_light",
        "tileTaken": "_on_tile_taken",
        "position": "_on_position",
        "car_position": "_on_car_position",
        "intersection": "_on_intersection",
        "death": "_on_death",
        "player_leave": "_on_player_leave",
        "spawn": "_on_spawn",
        "spawning": "_on_spawning",
    }

    def __init__(self, *, room_id: str, capacity: int = MAX_PLAYERS) -> None:
        self.room_id = room_id
        self.capacity = capacity
        self.options: dict[str, Any] = {}
        self.id_pool = IdPool(capacity)
        self.tiles = TileOwnership()
        self.spawns = SpawnRegistry()
        self.state = RoomState()
        self.lifecycle = SessionLifecycle()
        self._player_ids: dict[SessionKey, PlayerId] = {}

    @property
    def members(self) -> frozenset[SessionKey]:
        return frozenset(self._player_ids)

    def player_id_for(self, key: SessionKey) -> PlayerId | None:
        return self._player_ids.get(key)

    def available_spawn_spots(self) -> list[int]:
        return self.spawns.available()

    def tile_snapshot(self) -> dict[str, Any]:
        return self.tiles.snapshot()

    # Lifecycle

    def on_create(self, options: dict[str, Any] | None = None) -> None:
        self.options = dict(options or {})
        self.state = RoomState()
        self.id_pool.reset()
        self.tiles = TileOwnership()
        self.spawns = SpawnRegistry()
        self._player_ids.clear()
        logger.info("room %s created (capacity %d)", self.room_id, self.capacity)

    def on_join(self, key: SessionKey) -> list[Outbound]:
        if self.lifecycle.closed:
            raise SessionClosed(f"Room {self.room_id} is disposed")
        if key in self._player_ids:
            raise ValueError(f"{key} already joined room {self.room_id}")

        # Allocate first so a refused join leaves no trace in any structure.
        pid = self.id_pool.allocate()

        self.state.add_player(key)
        self._player_ids[key] = pid
        self.tiles.add_owner(owner_key(pid))

        if self.lifecycle.current_state == self.lifecycle.created:
            self.lifecycle.activate()

        logger.info("%s joined room %s as player %d", key, self.room_id, pid)

        out = [
            directed(key, "state", self.state.snapshot()),
            broadcast("current_tiles", self.tiles.snapshot()),
            # player_id must reach the joiner before peers see the join.
            directed(key, "player_id", {"id": pid}),
            directed(key, "welcomeMessage", WELCOME_MESSAGE),
            broadcast("join", {"id": key}),
        ]
        return self._with_patches(out)

    def on_leave(self, key: SessionKey, consented: bool = False) -> list[Outbound]:
        pid = self._player_ids.pop(key, None)
        if pid is not None:
            owner = owner_key(pid)
            self.tiles.remove_owner(owner)
            slot = self.spawns.release(owner)
            if slot is not None:
                logger.info("spawn point %d freed for player %d", slot, pid)
            self.id_pool.release(pid)

        logger.info("%s left room %s (player %s, consented=%s)", key, self.room_id, pid, consented)

        out = [broadcast("left", {"id": key})]
        # Replicated delete goes last so observers see settled bookkeeping.
        self.state.remove_player(key)
        return self._with_patches(out)

    def on_dispose(self) -> None:
        logger.info("room %s disposing...", self.room_id)
        self.id_pool.reset()
        self.tiles.clear()
        self.spawns.clear()
        self._player_ids.clear()
        if not self.lifecycle.closed:
            self.lifecycle.dispose()

    # Messages

    def on_message(self, kind: str, key: SessionKey, payload: Any) -> list[Outbound]:
        if self.lifecycle.closed:
            logger.warning("room %s is disposed; dropping %s from %s", self.room_id, kind, key)
            return []
        if key not in self._player_ids:
            logger.warning("dropping %s from %s: not a member of room %s", kind, key, self.room_id)
            return []

        try:
            msg = parse_inbound(kind, payload)
        except MalformedPayload as e:
            logger.warning("dropping malformed message from %s: %s", key, e)
            return []

        handler = getattr(self, self._handlers[kind])
        return self._with_patches(handler(key, msg))

    def _on_light(self, key: SessionKey, msg: LightMessage) -> list[Outbound]:
        return [broadcast("light", {"id": math.floor(msg.id), "prev": msg.prev})]

    def _on_tile_taken(self, key: SessionKey, msg: TileTakenMessage) -> list[Outbound]:
        self.tiles.take(owner=msg.owner, x=msg.xx, y=msg.yy)
        return [broadcast("current_tiles", self.tiles.snapshot())]

    def _on_position(self, key: SessionKey, msg: PositionMessage) -> list[Outbound]:
        self.state.move_player(key, x=msg.x, z=msg.z, rotation_y=msg.rotation_y)
        return [broadcast("player_position", msg.to_wire())]

    def _on_car_position(self, key: SessionKey, msg: CarPositionMessage) -> list[Outbound]:
        return [broadcast("car_position", msg.to_wire())]

    def _on_intersection(self, key: SessionKey, msg: IdMessage) -> list[Outbound]:
        return [broadcast("intersection", {"id": msg.id})]

    def _on_death(self, key: SessionKey, msg: DeathMessage) -> list[Outbound]:
        self.tiles.clear_owner(msg.owner)
        return [
            broadcast("current_tiles", self.tiles.snapshot()),
            broadcast("death", {"id": msg.owner}),
        ]

    def _on_player_leave(self, key: SessionKey, msg: IdMessage) -> list[Outbound]:
        return [broadcast("player_leave", {"id": msg.id})]

    def _on_spawn(self, key: SessionKey, msg: SpawnMessage) -> list[Outbound]:
        self.spawns.assign(msg.owner, msg.spawn)
        logger.info("Player %s assigned spawn point %d.", msg.owner, msg.spawn)
        return []

    def _on_spawning(self, key: SessionKey, msg: SpawningMessage) -> list[Outbound]:
        return [broadcast("spawning", {"id": self.available_spawn_spots(), "playerID": msg.player_id})]

    def _with_patches(self, out: list[Outbound]) -> list[Outbound]:
        patches = self.state.drain_patches()
        if patches:
            out.append(broadcast("state_patch", {"patches": [p.as_dict() for p in patches]}))
        return out

    def describe(self) -> dict[str, Any]:
        """Monitor view of the room."""

        return {
            "room_id": self.room_id,
            "phase": self.lifecycle.phase,
            "clients": len(self._player_ids),
            "max_clients": self.capacity,
            "players": {k: pid for k, pid in self._player_ids.items()},
            "available_ids": self.id_pool.available,
            "tiles": self.tiles.snapshot()["ownerships"],
            "spawns": self.spawns.as_dict(),
            "available_spawn_spots": self.available_spawn_spots(),
            "state": self.state.snapshot(),
        }

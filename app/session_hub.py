from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from app.api.models import AuthUser
from app.core.events import Outbound
from app.core.session import Session
from app.core.state import SessionKey

logger = logging.getLogger(__name__)


def new_session_key() -> SessionKey:
    # Short opaque keys, in the spirit of Colyseus session ids.
    return SessionKey(uuid4().hex[:9])


class SessionHub:
    """In-process rooms and their WebSocket members, keyed by room id.

    Contract:
      - `join(room_id, key, websocket)` creates the room on first join.
      - `dispatch(room_id, key, kind, payload)` runs one message handler.
      - `leave(room_id, key)` disposes the room once its last member is gone.

    Each room has an `asyncio.Lock` held across the handler and the delivery of
    its outbound messages, so a room never sees overlapping handlers and peers
    receive messages in mutation order.

    Note: rooms are process-local. Running several workers means several
    independent sets of rooms.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._sockets: dict[str, dict[SessionKey, WebSocket]] = defaultdict(dict)
        self._identities: dict[SessionKey, AuthUser] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        # Holders plus waiters per room lock.
        self._lock_users: dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def _room_lock(self, room_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        self._lock_users[room_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[room_id] -= 1
            if self._lock_users[room_id] == 0 and room_id not in self._sessions:
                self._locks.pop(room_id, None)
                self._lock_users.pop(room_id, None)

    def get(self, room_id: str) -> Session | None:
        return self._sessions.get(room_id)

    def rooms(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.room_id)

    def identity_of(self, key: SessionKey) -> AuthUser | None:
        return self._identities.get(key)

    def _create(self, room_id: str, options: dict[str, Any] | None) -> Session:
        session = Session(room_id=room_id)
        session.on_create(options)
        self._sessions[room_id] = session
        return session

    def _dispose(self, room_id: str) -> None:
        session = self._sessions.pop(room_id, None)
        self._sockets.pop(room_id, None)
        if session is not None:
            session.on_dispose()

    async def join(
        self,
        room_id: str,
        key: SessionKey,
        websocket: WebSocket,
        *,
        identity: AuthUser | None = None,
        options: dict[str, Any] | None = None,
    ) -> Session:
        """Join `key` to the room. Raises PoolExhausted when the room is full."""

        async with self._room_lock(room_id):
            session = self._sessions.get(room_id)
            if session is None or session.lifecycle.closed:
                session = self._create(room_id, options)

            try:
                out = session.on_join(key)
            except Exception:
                if not session.members:
                    self._dispose(room_id)
                raise

            self._sockets[room_id][key] = websocket
            if identity is not None:
                self._identities[key] = identity
            await self._deliver(room_id, out)
            return session

    async def dispatch(self, room_id: str, key: SessionKey, kind: str, payload: Any) -> list[Outbound]:
        async with self._room_lock(room_id):
            session = self._sessions.get(room_id)
            if session is None:
                logger.warning("dropping %s from %s: room %s does not exist", kind, key, room_id)
                return []
            out = session.on_message(kind, key, payload)
            await self._deliver(room_id, out)
            return out

    async def leave(self, room_id: str, key: SessionKey, *, consented: bool = False) -> None:
        async with self._room_lock(room_id):
            session = self._sessions.get(room_id)
            self._identities.pop(key, None)
            if session is None:
                return
            sockets = self._sockets.get(room_id, {})
            sockets.pop(key, None)

            out = session.on_leave(key, consented)
            await self._deliver(room_id, out)

            if not session.members:
                self._dispose(room_id)

    async def _deliver(self, room_id: str, out: list[Outbound]) -> None:
        sockets = self._sockets.get(room_id, {})
        for msg in out:
            if msg.to is None:
                targets = list(sockets.items())
            else:
                ws = sockets.get(msg.to)
                targets = [(msg.to, ws)] if ws is not None else []

            frame = msg.as_frame()
            dead: list[SessionKey] = []
            for key, ws in targets:
                try:
                    await ws.send_json(frame)
                except Exception:
                    # The dead socket's own receive loop triggers leave.
                    logger.debug("send of %s to %s in room %s failed; dropping socket", msg.type, key, room_id)
                    dead.append(key)

            for key in dead:
                sockets.pop(key, None)


hub = SessionHub()

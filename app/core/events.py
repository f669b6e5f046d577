from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.core.state import SessionKey


@dataclass(frozen=True, slots=True)
class Outbound:
    """One outbox entry produced by a session handler.

    `to=None` means broadcast to every member, sender included; otherwise the
    message is directed at a single session key.
    """

    type: str
    payload: Any
    to: SessionKey | None = None

    @property
    def is_broadcast(self) -> bool:
        return self.to is None

    def as_frame(self) -> dict[str, Any]:
        return {"type": self.type, "payload": self.payload}


def broadcast(type: str, payload: Any) -> Outbound:
    return Outbound(type=type, payload=payload)


def directed(to: SessionKey, type: str, payload: Any) -> Outbound:
    return Outbound(type=type, payload=payload, to=to)

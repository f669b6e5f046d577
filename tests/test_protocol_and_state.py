from __future__ import annotations

import pytest

from app.core.state import RoomState, SessionKey
from app.fsm import SessionLifecycle
from app.protocol import MalformedPayload, parse_frame, parse_inbound


def test_position_keeps_only_provided_fields_with_wire_names() -> None:
    msg = parse_inbound("position", {"id": "abc", "x": 1, "z": 2.5, "rotationY": 0.5, "leftBlinker": True, "extra": 1})
    assert msg.rotation_y == 0.5
    assert msg.to_wire() == {"id": "abc", "x": 1, "z": 2.5, "rotationY": 0.5, "leftBlinker": True}


def test_owner_ids_accept_numbers() -> None:
    assert parse_inbound("tileTaken", {"id": 2, "xx": 3, "yy": 5}).owner == "2"
    assert parse_inbound("death", {"id": 1.0}).owner == "1"
    assert parse_inbound("spawning", {"playerID": "4"}).player_id == "4"


def test_spawning_player_id_is_echoed_as_sent() -> None:
    assert parse_inbound("spawning", {"playerID": 4}).player_id == 4
    assert parse_inbound("spawning", {"playerID": "p4"}).player_id == "p4"


@pytest.mark.parametrize(
    ("kind", "payload"),
    [
        ("position", {"x": 1, "z": 2}),
        ("tileTaken", {"id": "1", "xx": 1.5, "yy": 0}),
        ("tileTaken", {"xx": 1, "yy": 0}),
        ("light", {"id": "red", "prev": 1}),
        ("spawn", {"id": "1", "spawn": 4}),
        ("spawn", {"id": "1", "spawn": -1}),
        ("death", {}),
        ("death", {"id": True}),
        ("position", "not an object"),
        ("teleport", {}),
        ("light", {"id": float("nan"), "prev": 1}),
        ("light", {"id": float("inf"), "prev": 1}),
        ("light", {"id": 1, "prev": float("-inf")}),
        ("position", {"x": float("nan"), "z": 0, "rotationY": 0}),
        ("car_position", {"x": 0, "z": float("inf"), "rotationY": 0}),
    ],
)
def test_malformed_payloads_are_rejected(kind: str, payload: object) -> None:
    with pytest.raises(MalformedPayload):
        parse_inbound(kind, payload)


def test_parse_frame() -> None:
    assert parse_frame({"type": "light", "payload": {"id": 1, "prev": 0}}) == ("light", {"id": 1, "prev": 0})
    with pytest.raises(MalformedPayload):
        parse_frame(["light", {}])
    with pytest.raises(MalformedPayload):
        parse_frame({"payload": {}})


def test_room_state_records_patches_in_order() -> None:
    state = RoomState()
    a = SessionKey("a")

    state.add_player(a)
    state.move_player(a, x=1, z=2, rotation_y=3)
    assert state.move_player(SessionKey("ghost"), x=0, z=0, rotation_y=0) is None
    state.remove_player(a)
    state.remove_player(a)

    patches = [p.as_dict() for p in state.drain_patches()]
    assert patches == [
        {"op": "add", "path": "players/a", "value": {"x": 0, "z": 0, "rotationY": 0}},
        {"op": "replace", "path": "players/a", "value": {"x": 1, "z": 2, "rotationY": 3}},
        {"op": "remove", "path": "players/a"},
    ]
    assert state.drain_patches() == []
    assert state.snapshot() == {"players": {}}


def test_lifecycle_transitions() -> None:
    lc = SessionLifecycle()
    assert lc.phase == "created"
    assert not lc.closed

    lc.activate()
    assert lc.phase == "active"

    lc.dispose()
    assert lc.closed
    assert lc.phase == "disposed"

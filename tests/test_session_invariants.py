from __future__ import annotations

import random
from collections import Counter

import pytest

from app.core.id_pool import PoolExhausted
from app.core.session import Session
from app.core.spawns import SPAWN_SLOTS
from app.core.state import SessionKey
from app.core.tiles import owner_key


def _check_invariants(s: Session) -> None:
    available = s.id_pool.available
    in_use = s.id_pool.in_use

    # Pool partitions 1..capacity, available strictly ascending.
    assert len(available) + len(in_use) == s.capacity
    assert not (set(available) & in_use)
    assert set(available) | in_use == set(range(1, s.capacity + 1))
    assert all(a < b for a, b in zip(available, available[1:]))

    # Members and ids line up.
    ids = {k: s.player_id_for(k) for k in s.members}
    assert set(ids.values()) == in_use
    assert len(s.members) == len(in_use)

    # Tile owners are exactly the members' ids; each tile has at most one owner.
    assert set(s.tiles.owners()) == {owner_key(pid) for pid in ids.values()}
    counts = Counter(t for owner in s.tiles.owners() for t in s.tiles.tiles_of(owner))
    assert all(n == 1 for n in counts.values())

    # Spawn slots stay in range; the query is the complement in order.
    taken = set(s.spawns.as_dict().values())
    assert taken <= set(SPAWN_SLOTS)
    assert s.available_spawn_spots() == [x for x in SPAWN_SLOTS if x not in taken]

    # Replicated players are exactly the members.
    assert set(s.state.players) == set(s.members)


@pytest.mark.parametrize("seed", range(40))
def test_random_sequences_preserve_invariants(seed: int) -> None:
    rng = random.Random(seed)
    s = Session(room_id=f"fuzz-{seed}")
    s.on_create({})
    next_key = 0

    for _ in range(200):
        members = sorted(s.members)
        op = rng.choice(["join", "join", "leave", "tile", "tile", "tile", "spawn", "death", "position"])

        if op == "join" or not members:
            key = SessionKey(f"k{next_key}")
            next_key += 1
            if len(members) == s.capacity:
                before = s.describe()
                with pytest.raises(PoolExhausted):
                    s.on_join(key)
                assert s.describe() == before
            else:
                s.on_join(key)

        elif op == "leave":
            key = rng.choice(members)
            pid = s.player_id_for(key)
            s.on_leave(key, consented=rng.random() < 0.5)
            owner = owner_key(pid)
            assert key not in s.members
            assert pid not in s.id_pool.in_use
            assert owner not in s.tiles
            assert owner not in s.spawns

        elif op == "tile":
            sender = rng.choice(members)
            # Mostly real owners, sometimes an id nobody holds.
            owner = str(rng.randint(1, s.capacity + 1))
            out = s.on_message("tileTaken", sender, {"id": owner, "xx": rng.randint(0, 4), "yy": rng.randint(0, 4)})
            assert [m.type for m in out] == ["current_tiles"]

        elif op == "spawn":
            sender = rng.choice(members)
            s.on_message("spawn", sender, {"id": str(s.player_id_for(sender)), "spawn": rng.choice(SPAWN_SLOTS)})

        elif op == "death":
            sender = rng.choice(members)
            owner = str(s.player_id_for(sender))
            s.on_message("death", sender, {"id": owner})
            assert s.tiles.tiles_of(owner_key(s.player_id_for(sender))) == frozenset()

        else:
            sender = rng.choice(members)
            s.on_message("position", sender, {"x": rng.random(), "z": rng.random(), "rotationY": rng.random()})

        _check_invariants(s)


def test_successive_joins_from_empty_are_deterministic() -> None:
    s = Session(room_id="det")
    s.on_create({})

    s.on_join(SessionKey("a"))
    s.on_join(SessionKey("b"))
    assert s.player_id_for(SessionKey("a")) == 1
    assert s.player_id_for(SessionKey("b")) == 2

    s.on_leave(SessionKey("a"))
    s.on_join(SessionKey("c"))
    assert s.player_id_for(SessionKey("c")) == 1
    _check_invariants(s)

from __future__ import annotations

import logging
from typing import NewType

from app.core.id_pool import PlayerId

logger = logging.getLogger(__name__)

# Stringified player id; the key space used by the tile map, the spawn registry and the wire.
OwnerKey = NewType("OwnerKey", str)

TileKey = NewType("TileKey", str)


def owner_key(pid: PlayerId) -> OwnerKey:
    return OwnerKey(str(pid))


def tile_key(x: int, y: int) -> TileKey:
    return TileKey(f"{x},{y}")


def split_tile_key(key: str) -> dict[str, int]:
    x, y = key.split(",")
    return {"x": int(x), "y": int(y)}


class TileOwnership:
    """Authoritative owner -> tiles map.

    A tile key appears in at most one owner's set. Claims always remove the
    tile from its previous owner before handing it to the new one.
    """

    def __init__(self) -> None:
        self._by_owner: dict[OwnerKey, set[TileKey]] = {}

    def __contains__(self, owner: object) -> bool:
        return owner in self._by_owner

    def __len__(self) -> int:
        return len(self._by_owner)

    def owners(self) -> list[OwnerKey]:
        return list(self._by_owner)

    def tiles_of(self, owner: OwnerKey) -> frozenset[TileKey]:
        return frozenset(self._by_owner.get(owner, ()))

    def add_owner(self, owner: OwnerKey) -> None:
        self._by_owner[owner] = set()

    def remove_owner(self, owner: OwnerKey) -> None:
        self._by_owner.pop(owner, None)

    def clear_owner(self, owner: OwnerKey) -> None:
        tiles = self._by_owner.get(owner)
        if tiles is not None:
            tiles.clear()

    def clear(self) -> None:
        self._by_owner.clear()

    def find_owner(self, key: TileKey) -> OwnerKey | None:
        for owner, tiles in self._by_owner.items():
            if key in tiles:
                return owner
        return None

    def take(self, *, owner: OwnerKey, x: int, y: int) -> bool:
        """Reassign tile (x, y) to `owner`.

        Returns False when `owner` has no tile set; the previous owner still
        loses the tile in that case.
        """

        key = tile_key(x, y)
        previous = self.find_owner(key)
        if previous is not None:
            self._by_owner[previous].discard(key)

        tiles = self._by_owner.get(owner)
        if tiles is None:
            logger.debug("tile %s claimed by unknown owner %r; ignoring", key, owner)
            return False
        tiles.add(key)
        return True

    def snapshot(self) -> dict[str, dict[str, list[dict[str, int]]]]:
        """`current_tiles` payload: {"ownerships": {owner: [{"x":..,"y":..}, ...]}}."""

        ownerships: dict[str, list[dict[str, int]]] = {}
        for owner, tiles in self._by_owner.items():
            cells = [split_tile_key(k) for k in tiles]
            ownerships[owner] = sorted(cells, key=lambda c: (c["x"], c["y"]))
        return {"ownerships": ownerships}

from __future__ import annotations

from app.core.tiles import OwnerKey

SPAWN_SLOTS: tuple[int, ...] = (0, 1, 2, 3)


class SpawnRegistry:
    """Which spawn slot each player last reported.

    Two players may report the same slot; the registry records what it is told
    and `available()` is only an advisory query.
    """

    def __init__(self) -> None:
        self._slots: dict[OwnerKey, int] = {}

    def __contains__(self, owner: object) -> bool:
        return owner in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def get(self, owner: OwnerKey) -> int | None:
        return self._slots.get(owner)

    def assign(self, owner: OwnerKey, slot: int) -> None:
        if slot not in SPAWN_SLOTS:
            raise ValueError(f"spawn slot must be one of {SPAWN_SLOTS}, got {slot}")
        self._slots[owner] = slot

    def release(self, owner: OwnerKey) -> int | None:
        return self._slots.pop(owner, None)

    def clear(self) -> None:
        self._slots.clear()

    def available(self) -> list[int]:
        taken = set(self._slots.values())
        return [s for s in SPAWN_SLOTS if s not in taken]

    def as_dict(self) -> dict[str, int]:
        return dict(self._slots)

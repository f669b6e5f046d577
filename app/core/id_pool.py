from __future__ import annotations

from typing import NewType

PlayerId = NewType("PlayerId", int)

MAX_PLAYERS = 4


class PoolExhausted(RuntimeError):
    pass


class IdPool:
    """Bounded pool of small player ids, always handing out the lowest free one.

    `available` stays sorted ascending; `in_use` and `available` partition
    `1..capacity` at all times.
    """

    def __init__(self, capacity: int = MAX_PLAYERS) -> None:
        self.capacity = capacity
        self._available: list[PlayerId] = []
        self._in_use: set[PlayerId] = set()
        self.reset()

    @property
    def available(self) -> list[PlayerId]:
        return list(self._available)

    @property
    def in_use(self) -> frozenset[PlayerId]:
        return frozenset(self._in_use)

    def reset(self) -> None:
        self._available = [PlayerId(i) for i in range(1, self.capacity + 1)]
        self._in_use.clear()

    def allocate(self) -> PlayerId:
        if not self._available:
            raise PoolExhausted(f"No available ids in the pool (capacity {self.capacity})")
        pid = self._available.pop(0)
        self._in_use.add(pid)
        return pid

    def release(self, pid: PlayerId) -> None:
        # Releasing an id that isn't checked out is a no-op.
        if pid not in self._in_use:
            return
        self._in_use.discard(pid)
        self._available.append(pid)
        self._available.sort()

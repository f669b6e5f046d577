from __future__ import annotations

import pytest

from app.core.id_pool import IdPool, PlayerId, PoolExhausted


def test_allocates_lowest_first_and_exhausts() -> None:
    pool = IdPool(capacity=4)
    assert [pool.allocate() for _ in range(4)] == [1, 2, 3, 4]
    assert pool.available == []
    assert pool.in_use == {1, 2, 3, 4}

    with pytest.raises(PoolExhausted):
        pool.allocate()


def test_release_keeps_available_sorted_and_reuses_lowest() -> None:
    pool = IdPool(capacity=4)
    for _ in range(4):
        pool.allocate()

    pool.release(PlayerId(3))
    pool.release(PlayerId(1))
    assert pool.available == [1, 3]
    assert pool.allocate() == 1
    assert pool.available == [3]


def test_release_unknown_id_is_noop() -> None:
    pool = IdPool(capacity=4)
    pool.allocate()

    pool.release(PlayerId(2))
    pool.release(PlayerId(99))
    assert pool.available == [2, 3, 4]

    pool.release(PlayerId(1))
    pool.release(PlayerId(1))
    assert pool.available == [1, 2, 3, 4]
    assert pool.in_use == frozenset()


def test_reset_restores_full_pool() -> None:
    pool = IdPool(capacity=3)
    pool.allocate()
    pool.allocate()
    pool.reset()
    assert pool.available == [1, 2, 3]
    assert pool.in_use == frozenset()

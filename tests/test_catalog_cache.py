"""Tests for the shuffle cache behind the short and long catalogs."""

from __future__ import annotations

import random
from collections import Counter

import pytest

from app.services.catalog import SHUFFLE_INTERVAL_SECONDS, CatalogCache
from app.store import RecordStore
from app.utils import shuffled
from conftest import film


class FakeClock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


async def _seed(store: RecordStore, count: int = 40) -> None:
    await store.save("short", [film(f"s{index}", 90) for index in range(count)])
    await store.save("long", [film(f"l{index}", 150) for index in range(5)])
    await store.reload()


@pytest.mark.anyio("asyncio")
async def test_order_is_stable_within_shuffle_epoch(store: RecordStore) -> None:
    await _seed(store)
    clock = FakeClock()
    cache = CatalogCache(store, clock=clock, rng=random.Random(1))

    first = await cache.get_ordered("short")
    clock.now += SHUFFLE_INTERVAL_SECONDS
    second = await cache.get_ordered("short")

    assert second == first
    assert cache.last_shuffle("short") == 1_000_000.0


@pytest.mark.anyio("asyncio")
async def test_reshuffles_after_epoch_with_same_items(store: RecordStore) -> None:
    await _seed(store)
    clock = FakeClock()
    cache = CatalogCache(store, clock=clock, rng=random.Random(7))

    first = await cache.get_ordered("short")
    clock.now += SHUFFLE_INTERVAL_SECONDS + 1
    second = await cache.get_ordered("short")

    assert second != first
    assert Counter(item.id for item in second) == Counter(item.id for item in first)
    assert cache.last_shuffle("short") == clock.now


@pytest.mark.anyio("asyncio")
async def test_invalidate_forces_reshuffle(store: RecordStore) -> None:
    await _seed(store)
    clock = FakeClock()
    cache = CatalogCache(store, clock=clock, rng=random.Random(3))

    await cache.get_ordered("short")
    cache.invalidate()

    assert cache.last_shuffle("short") is None
    await cache.get_ordered("short")
    assert cache.last_shuffle("short") == clock.now


@pytest.mark.anyio("asyncio")
async def test_new_snapshot_version_picks_up_new_items(store: RecordStore) -> None:
    await _seed(store, count=3)
    cache = CatalogCache(store, clock=FakeClock(), rng=random.Random(5))

    before = await cache.get_ordered("short")
    await store.save("short", [*before, film("fresh", 80)])
    await store.reload()
    after = await cache.get_ordered("short")

    assert len(before) == 3
    assert {item.id for item in after} == {item.id for item in before} | {"fresh"}


@pytest.mark.anyio("asyncio")
async def test_collections_are_cached_independently(store: RecordStore) -> None:
    await _seed(store)
    cache = CatalogCache(store, clock=FakeClock(), rng=random.Random(11))

    short = await cache.get_ordered("short")
    long = await cache.get_ordered("long")

    assert {item.id for item in long} == {f"l{index}" for index in range(5)}
    assert len(short) == 40


def test_shuffled_returns_new_sequence_without_mutating_source() -> None:
    source = list(range(20))

    result = shuffled(source, random.Random(2))

    assert source == list(range(20))
    assert sorted(result) == source
    assert result is not source

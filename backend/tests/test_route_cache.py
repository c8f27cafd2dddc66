from __future__ import annotations

import pytest

from bearmaps import route_cache
from bearmaps.route_cache import RouteCacheStore
from bearmaps.router import PathResult


def _path(*nodes: int) -> PathResult:
    return PathResult(nodes=tuple(nodes), cost=float(len(nodes) - 1), explored_states=len(nodes))


def test_route_cache_hits_misses_and_lru_eviction() -> None:
    cache = RouteCacheStore(ttl_s=600, max_entries=2)

    assert cache.get((1, 2)) is None
    cache.set((1, 2), _path(1, 2))
    cache.set((2, 3), _path(2, 3))
    assert cache.get((1, 2)) == _path(1, 2)  # (1, 2) is now most recent
    cache.set((3, 4), _path(3, 4))

    assert cache.get((2, 3)) is None
    assert cache.get((3, 4)) == _path(3, 4)
    stats = cache.snapshot()
    assert stats["size"] == 2
    assert stats["hits"] == 2
    assert stats["misses"] == 2
    assert stats["evictions"] == 1
    assert stats["max_entries"] == 2


def test_route_cache_ttl_expiry(monkeypatch: pytest.MonkeyPatch) -> None:
    now = {"t": 1_000.0}
    monkeypatch.setattr(route_cache.time, "monotonic", lambda: now["t"])
    cache = RouteCacheStore(ttl_s=5, max_entries=10)

    cache.set((1, 2), _path(1, 2))
    now["t"] += 4.0
    assert cache.get((1, 2)) is not None
    now["t"] += 2.0
    assert cache.get((1, 2)) is None
    assert cache.snapshot()["size"] == 0


def test_route_cache_keys_are_directional() -> None:
    cache = RouteCacheStore(ttl_s=600, max_entries=10)
    cache.set((1, 2), _path(1, 2))
    assert cache.get((2, 1)) is None


def test_module_helpers_share_global_store() -> None:
    route_cache.clear_route_cache()
    try:
        route_cache.set_cached_path(7, 9, _path(7, 8, 9))
        assert route_cache.get_cached_path(7, 9) == _path(7, 8, 9)
        assert route_cache.route_cache_stats()["size"] == 1
        assert route_cache.clear_route_cache() == 1
        assert route_cache.get_cached_path(7, 9) is None
    finally:
        route_cache.clear_route_cache()


def test_store_clamps_configuration() -> None:
    cache = RouteCacheStore(ttl_s=0, max_entries=0)
    stats = cache.snapshot()
    assert stats["ttl_s"] == 1
    assert stats["max_entries"] == 1


def test_get_or_compute_runs_search_once() -> None:
    cache = RouteCacheStore(ttl_s=600, max_entries=10)
    calls: list[int] = []

    def _compute() -> PathResult:
        calls.append(1)
        return _path(1, 5, 9)

    first, first_cached = cache.get_or_compute((1, 9), _compute)
    second, second_cached = cache.get_or_compute((1, 9), _compute)

    assert first == second == _path(1, 5, 9)
    assert (first_cached, second_cached) == (False, True)
    assert len(calls) == 1

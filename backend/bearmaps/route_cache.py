from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock

from .router import PathResult
from .settings import settings

NodePair = tuple[int, int]


@dataclass
class _CachedPath:
    stored_at: float
    path: PathResult


class RouteCacheStore:
    """TTL + LRU cache of A* results keyed by (source node, destination node).

    Entries never go stale with respect to the graph, which is immutable once
    loaded; the TTL only bounds how long memory is held. Keys are directional.
    """

    def __init__(self, *, ttl_s: int, max_entries: int) -> None:
        self._ttl_s = max(1, int(ttl_s))
        self._max_entries = max(1, int(max_entries))
        self._lock = Lock()
        self._paths: OrderedDict[NodePair, _CachedPath] = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: NodePair) -> PathResult | None:
        now = time.monotonic()
        with self._lock:
            cached = self._paths.get(key)
            if cached is not None and now - cached.stored_at > self._ttl_s:
                del self._paths[key]
                cached = None
            if cached is None:
                self._misses += 1
                return None
            self._paths.move_to_end(key)
            self._hits += 1
            return cached.path

    def set(self, key: NodePair, path: PathResult) -> None:
        with self._lock:
            self._paths[key] = _CachedPath(stored_at=time.monotonic(), path=path)
            self._paths.move_to_end(key)
            overflow = len(self._paths) - self._max_entries
            for _ in range(max(0, overflow)):
                self._paths.popitem(last=False)
            self._evictions += max(0, overflow)

    def get_or_compute(self, key: NodePair, compute: Callable[[], PathResult]) -> tuple[PathResult, bool]:
        """Cached path for ``key`` and True, or the freshly computed one and False.

        ``compute`` runs outside the lock; two threads missing on the same pair
        both search and the later result wins.
        """
        cached = self.get(key)
        if cached is not None:
            return cached, True
        path = compute()
        self.set(key, path)
        return path, False

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._paths)
            self._paths.clear()
            return dropped

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._paths),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "ttl_s": self._ttl_s,
                "max_entries": self._max_entries,
            }


ROUTE_CACHE = RouteCacheStore(
    ttl_s=settings.route_cache_ttl_s,
    max_entries=settings.route_cache_max_entries,
)


def get_cached_path(source: int, dest: int) -> PathResult | None:
    return ROUTE_CACHE.get((source, dest))


def set_cached_path(source: int, dest: int, path: PathResult) -> None:
    ROUTE_CACHE.set((source, dest), path)


def cached_or_computed_path(source: int, dest: int, compute: Callable[[], PathResult]) -> tuple[PathResult, bool]:
    return ROUTE_CACHE.get_or_compute((source, dest), compute)


def clear_route_cache() -> int:
    return ROUTE_CACHE.clear()


def route_cache_stats() -> dict[str, int]:
    return ROUTE_CACHE.snapshot()

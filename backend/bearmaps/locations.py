from __future__ import annotations

import bisect
from dataclasses import dataclass
from typing import Any

from .graph_db import clean_string


@dataclass(frozen=True)
class Location:
    id: int
    lon: float
    lat: float
    name: str

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, "lon": self.lon, "lat": self.lat, "name": self.name}


class LocationIndex:
    """Named OSM nodes, searchable by cleaned name.

    Locations keep their own coordinates; most named nodes (shops, buildings)
    are not on any road and get dropped from the routing graph.
    """

    def __init__(self) -> None:
        self._by_cleaned: dict[str, list[Location]] = {}
        self._sorted_keys: list[str] = []
        self._dirty = False

    def add(self, node_id: int, lon: float, lat: float, name: str) -> None:
        cleaned = clean_string(name)
        if not cleaned.strip():
            return
        location = Location(id=int(node_id), lon=float(lon), lat=float(lat), name=name)
        bucket = self._by_cleaned.setdefault(cleaned, [])
        if not bucket:
            self._dirty = True
        bucket.append(location)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._by_cleaned.values())

    def _keys(self) -> list[str]:
        if self._dirty:
            self._sorted_keys = sorted(self._by_cleaned)
            self._dirty = False
        return self._sorted_keys

    def finalize(self) -> None:
        # Sort once up front so request threads only ever read.
        self._keys()

    def prefix_search(self, prefix: str, *, limit: int | None = None) -> list[str]:
        cleaned = clean_string(prefix)
        if not cleaned:
            return []
        keys = self._keys()
        out: list[str] = []
        seen: set[str] = set()
        idx = bisect.bisect_left(keys, cleaned)
        while idx < len(keys) and keys[idx].startswith(cleaned):
            for name in sorted({loc.name for loc in self._by_cleaned[keys[idx]]}):
                if name in seen:
                    continue
                seen.add(name)
                out.append(name)
                if limit is not None and len(out) >= limit:
                    return out
            idx += 1
        return out

    def get_locations(self, name: str) -> list[dict[str, Any]]:
        cleaned = clean_string(name)
        if not cleaned:
            return []
        return [loc.as_dict() for loc in self._by_cleaned.get(cleaned, ())]

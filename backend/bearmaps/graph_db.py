from __future__ import annotations

import logging
import math
import re
from collections import deque
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import DuplicateNodeError, EmptyGraphError, GraphFrozenError, UnknownNodeError
from .geometry import euclidean
from .logging_utils import log_event
from .settings import settings

_NON_NAME_CHARS = re.compile(r"[^A-Za-z ]")


def clean_string(s: str) -> str:
    """Keep ASCII letters and spaces only, lowercased. Idempotent."""
    return _NON_NAME_CHARS.sub("", s).lower()


@dataclass(frozen=True)
class GraphNode:
    id: int
    lon: float
    lat: float


def _grid_key(lon: float, lat: float, bucket_deg: float) -> tuple[int, int]:
    return (int(math.floor(lon / bucket_deg)), int(math.floor(lat / bucket_deg)))


def _ring_offsets(radius: int) -> tuple[tuple[int, int], ...]:
    if radius <= 0:
        return ((0, 0),)
    offsets: list[tuple[int, int]] = []
    for dx in range(-radius, radius + 1):
        offsets.append((dx, -radius))
        offsets.append((dx, radius))
    for dy in range(-radius + 1, radius):
        offsets.append((-radius, dy))
        offsets.append((radius, dy))
    return tuple(offsets)


class GraphDB:
    """Undirected road graph keyed by OSM node id.

    Built through ``add_node`` / ``connect_way`` while the XML dump is parsed,
    then ``finalize``d: nodes without neighbours are dropped, adjacency lists
    become tuples, and the nearest-node grid and component index are built.
    A finalized graph is read-only and safe to share between request threads.
    """

    def __init__(
        self,
        *,
        reject_duplicates: bool | None = None,
        grid_bucket_deg: float | None = None,
    ) -> None:
        self._nodes: dict[int, GraphNode] = {}
        self._adjacency: dict[int, list[int]] | dict[int, tuple[int, ...]] = {}
        self._reject_duplicates = (
            settings.graph_reject_duplicate_nodes if reject_duplicates is None else bool(reject_duplicates)
        )
        self._bucket_deg = float(grid_bucket_deg or settings.graph_grid_bucket_deg)
        self._grid: dict[tuple[int, int], tuple[int, ...]] = {}
        self._grid_extent: tuple[int, int, int, int] | None = None
        self._component_by_node: dict[int, int] = {}
        self._component_sizes: dict[int, int] = {}
        self._frozen = False

    # -- construction ---------------------------------------------------

    def add_node(self, node_id: int, lon: float, lat: float) -> None:
        if self._frozen:
            raise GraphFrozenError("add_node")
        node_id = int(node_id)
        if node_id in self._nodes:
            if self._reject_duplicates:
                raise DuplicateNodeError(node_id)
            log_event("graph_duplicate_node", level=logging.WARNING, node_id=node_id)
            # Later coordinates win; existing edges are kept so adjacency stays symmetric.
            self._nodes[node_id] = GraphNode(id=node_id, lon=float(lon), lat=float(lat))
            return
        self._nodes[node_id] = GraphNode(id=node_id, lon=float(lon), lat=float(lat))
        self._adjacency[node_id] = []

    def connect_way(self, ids: Sequence[int]) -> None:
        """Chain consecutive ids of a way into undirected edges."""
        if self._frozen:
            raise GraphFrozenError("connect_way")
        way = [int(node_id) for node_id in ids]
        for node_id in way:
            if node_id not in self._nodes:
                raise UnknownNodeError(node_id)
        for a, b in zip(way, way[1:]):
            if a == b:
                continue
            self._adjacency[a].append(b)  # type: ignore[union-attr]
            self._adjacency[b].append(a)  # type: ignore[union-attr]

    def clean(self) -> int:
        """Drop nodes that no way references. Returns the number removed."""
        if self._frozen:
            raise GraphFrozenError("clean")
        removed = [node_id for node_id, neighbours in self._adjacency.items() if not neighbours]
        for node_id in removed:
            del self._nodes[node_id]
            del self._adjacency[node_id]
        return len(removed)

    def finalize(self) -> int:
        removed = self.clean()
        self._adjacency = {node_id: tuple(neighbours) for node_id, neighbours in self._adjacency.items()}
        self._build_grid_index()
        self._build_component_index()
        self._frozen = True
        return removed

    def _build_grid_index(self) -> None:
        grid_mut: dict[tuple[int, int], list[int]] = {}
        for node in self._nodes.values():
            grid_mut.setdefault(_grid_key(node.lon, node.lat, self._bucket_deg), []).append(node.id)
        self._grid = {key: tuple(values) for key, values in grid_mut.items()}
        if not self._grid:
            self._grid_extent = None
            return
        xs = [key[0] for key in self._grid]
        ys = [key[1] for key in self._grid]
        self._grid_extent = (min(xs), max(xs), min(ys), max(ys))

    def _build_component_index(self) -> None:
        component_by_node: dict[int, int] = {}
        component_sizes: dict[int, int] = {}
        component_idx = 0
        for node_id in self._nodes:
            if node_id in component_by_node:
                continue
            component_idx += 1
            q: deque[int] = deque([node_id])
            size = 0
            while q:
                current = q.popleft()
                if current in component_by_node:
                    continue
                component_by_node[current] = component_idx
                size += 1
                for nxt in self._adjacency.get(current, ()):
                    if nxt not in component_by_node:
                        q.append(nxt)
            component_sizes[component_idx] = size
        self._component_by_node = component_by_node
        self._component_sizes = component_sizes

    # -- reads -----------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _node(self, v: int) -> GraphNode:
        node = self._nodes.get(v)
        if node is None:
            raise UnknownNodeError(v)
        return node

    def __contains__(self, v: object) -> bool:
        return v in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def vertices(self) -> Iterator[int]:
        return iter(self._nodes)

    def nodes(self) -> Iterable[GraphNode]:
        return self._nodes.values()

    def adjacent(self, v: int) -> Sequence[int]:
        neighbours = self._adjacency.get(v)
        if neighbours is None:
            raise UnknownNodeError(v)
        return neighbours

    def distance(self, v: int, w: int) -> float:
        a = self._node(v)
        b = self._node(w)
        return euclidean(a.lon, a.lat, b.lon, b.lat)

    def lon(self, v: int) -> float:
        return self._node(v).lon

    def lat(self, v: int) -> float:
        return self._node(v).lat

    def closest(self, lon: float, lat: float) -> int:
        """Id of the node nearest to (lon, lat); ties go to whichever is seen first."""
        if not self._nodes:
            raise EmptyGraphError()
        if self._frozen and self._grid_extent is not None:
            found = self._closest_by_grid(lon, lat)
            if found is not None:
                return found
        return self._closest_by_scan(lon, lat)

    def _closest_by_scan(self, lon: float, lat: float) -> int:
        best_id: int | None = None
        best = math.inf
        for node in self._nodes.values():
            d = euclidean(lon, lat, node.lon, node.lat)
            if d < best:
                best_id = node.id
                best = d
        if best_id is None:
            raise EmptyGraphError()
        return best_id

    def _closest_by_grid(self, lon: float, lat: float) -> int | None:
        assert self._grid_extent is not None
        min_x, max_x, min_y, max_y = self._grid_extent
        cx, cy = _grid_key(lon, lat, self._bucket_deg)
        if not (min_x <= cx <= max_x and min_y <= cy <= max_y):
            return None
        max_radius = max(cx - min_x, max_x - cx, cy - min_y, max_y - cy)
        best_id: int | None = None
        best = math.inf
        for radius in range(0, max_radius + 1):
            for dx, dy in _ring_offsets(radius):
                for node_id in self._grid.get((cx + dx, cy + dy), ()):
                    node = self._nodes[node_id]
                    d = euclidean(lon, lat, node.lon, node.lat)
                    if d < best:
                        best_id = node_id
                        best = d
            # Every cell on ring r + 1 lies more than r buckets away.
            if best_id is not None and best <= radius * self._bucket_deg:
                break
        return best_id

    # -- components & stats ---------------------------------------------

    def component_of(self, v: int) -> int:
        if v not in self._nodes:
            raise UnknownNodeError(v)
        return self._component_by_node.get(v, 0)

    def same_component(self, u: int, v: int) -> bool:
        if not self._frozen:
            return True
        return self.component_of(u) == self.component_of(v)

    @property
    def component_count(self) -> int:
        return len(self._component_sizes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(neighbours) for neighbours in self._adjacency.values()) // 2

    def stats(self) -> dict[str, Any]:
        largest = max(self._component_sizes.values(), default=0)
        return {
            "nodes": self.node_count,
            "edges": self.edge_count,
            "components": self.component_count,
            "largest_component_nodes": largest,
            "largest_component_ratio": (float(largest) / float(self.node_count)) if self.node_count else 0.0,
            "frozen": self._frozen,
        }

from __future__ import annotations

import time
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import IO

from .graph_db import GraphDB
from .locations import LocationIndex
from .logging_utils import log_event
from .settings import settings

ALLOWED_HIGHWAYS: frozenset[str] = frozenset(
    {
        "motorway",
        "trunk",
        "primary",
        "secondary",
        "tertiary",
        "unclassified",
        "residential",
        "living_street",
        "motorway_link",
        "trunk_link",
        "primary_link",
        "secondary_link",
        "tertiary_link",
    }
)


@dataclass(frozen=True)
class IngestReport:
    nodes_seen: int
    nodes_skipped: int
    ways_seen: int
    ways_kept: int
    ways_split: int
    nodes_removed: int = 0


class GraphBuildingHandler:
    """Element callbacks that turn an OSM XML dump into a ``GraphDB``.

    Every ``<node>`` becomes a graph node. A ``<way>`` is kept only when its
    ``highway`` tag names a routable class; its ``<nd>`` refs are then chained
    into edges. Named nodes also go into the ``LocationIndex``.
    """

    def __init__(self, graph: GraphDB, locations: LocationIndex | None = None) -> None:
        self.graph = graph
        self.locations = locations
        self._state: str | None = None
        self._node: tuple[int, float, float] | None = None
        self._way_refs: list[int] = []
        self._way_highway = ""
        self.nodes_seen = 0
        self.nodes_skipped = 0
        self.ways_seen = 0
        self.ways_kept = 0
        self.ways_split = 0

    def start_element(self, tag: str, attrib: Mapping[str, str]) -> None:
        if tag == "node":
            self.nodes_seen += 1
            self._state = "node"
            try:
                node_id = int(attrib["id"])
                lon = float(attrib["lon"])
                lat = float(attrib["lat"])
            except (KeyError, ValueError):
                self.nodes_skipped += 1
                self._node = None
                return
            self.graph.add_node(node_id, lon, lat)
            self._node = (node_id, lon, lat)
        elif tag == "way":
            self.ways_seen += 1
            self._state = "way"
            self._way_refs = []
            self._way_highway = ""
        elif tag == "nd" and self._state == "way":
            ref = str(attrib.get("ref", "")).strip()
            if ref:
                self._way_refs.append(int(ref))
        elif tag == "tag" and self._state == "way":
            if attrib.get("k") == "highway":
                self._way_highway = str(attrib.get("v", "")).strip().lower()
        elif tag == "tag" and self._state == "node":
            if attrib.get("k") == "name" and self._node is not None and self.locations is not None:
                node_id, lon, lat = self._node
                self.locations.add(node_id, lon, lat, str(attrib.get("v", "")))
        elif tag == "relation":
            self._state = "relation"

    def end_element(self, tag: str) -> None:
        if tag == "way":
            if self._way_highway in ALLOWED_HIGHWAYS:
                self._connect_known_runs(self._way_refs)
                self.ways_kept += 1
            self._way_refs = []
            self._way_highway = ""
            self._state = None
        elif tag in ("node", "relation"):
            self._node = None
            self._state = None

    def _connect_known_runs(self, refs: list[int]) -> None:
        # Clipped extracts reference nodes outside the dump; never bridge across them.
        runs: list[list[int]] = [[]]
        for ref in refs:
            if ref in self.graph:
                runs[-1].append(ref)
            elif runs[-1]:
                runs.append([])
        runs = [run for run in runs if len(run) >= 2]
        if len(refs) >= 2 and (len(runs) != 1 or len(runs[0]) != len(refs)):
            self.ways_split += 1
        for run in runs:
            self.graph.connect_way(run)

    def report(self, *, nodes_removed: int = 0) -> IngestReport:
        return IngestReport(
            nodes_seen=self.nodes_seen,
            nodes_skipped=self.nodes_skipped,
            ways_seen=self.ways_seen,
            ways_kept=self.ways_kept,
            ways_split=self.ways_split,
            nodes_removed=nodes_removed,
        )


def parse_osm(
    source: str | Path | IO[bytes],
    graph: GraphDB,
    locations: LocationIndex | None = None,
) -> GraphBuildingHandler:
    """Stream ``source`` through a handler. ``ET.ParseError`` propagates."""
    handler = GraphBuildingHandler(graph, locations)
    for event, elem in ET.iterparse(source, events=("start", "end")):
        if event == "start":
            handler.start_element(elem.tag, elem.attrib)
        else:
            handler.end_element(elem.tag)
            if elem.tag in ("node", "way", "relation"):
                elem.clear()
    return handler


@dataclass(frozen=True)
class MapData:
    graph: GraphDB
    locations: LocationIndex
    source: str
    report: IngestReport


def build_map_data(source: str | Path | IO[bytes], *, graph: GraphDB | None = None) -> MapData:
    t0 = time.perf_counter()
    graph = graph if graph is not None else GraphDB()
    locations = LocationIndex()
    handler = parse_osm(source, graph, locations)
    removed = graph.finalize()
    locations.finalize()
    report = handler.report(nodes_removed=removed)
    source_name = str(source) if isinstance(source, (str, Path)) else str(getattr(source, "name", "<stream>"))
    log_event(
        "graph_loaded",
        source=source_name,
        nodes_seen=report.nodes_seen,
        nodes_skipped=report.nodes_skipped,
        ways_seen=report.ways_seen,
        ways_kept=report.ways_kept,
        ways_split=report.ways_split,
        nodes_removed=report.nodes_removed,
        locations=len(locations),
        **graph.stats(),
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return MapData(graph=graph, locations=locations, source=source_name, report=report)


@lru_cache(maxsize=1)
def load_map_data() -> MapData:
    path = Path(settings.osm_db_path)
    if not path.exists():
        raise FileNotFoundError(f"OSM dump not found: {path}")
    return build_map_data(path)

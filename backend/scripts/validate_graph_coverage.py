from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

import numpy as np
from scipy.spatial import cKDTree

from bearmaps.geometry import Rect
from bearmaps.graph_db import GraphDB
from bearmaps.osm_ingest import build_map_data
from bearmaps.quadtree import ROOT_BOUNDS


def _graph_points(graph: GraphDB) -> np.ndarray:
    points = [(node.lon, node.lat) for node in graph.nodes()]
    if not points:
        return np.zeros((0, 2), dtype=np.float64)
    return np.asarray(points, dtype=np.float64)


def _sample_grid(bounds: Rect, samples_per_axis: int) -> np.ndarray:
    # Cell centres, so samples never sit on the map edge.
    n = max(1, int(samples_per_axis))
    lon_step = bounds.width / n
    lat_step = bounds.height / n
    lons = bounds.ul_lon + lon_step * (np.arange(n) + 0.5)
    lats = bounds.ul_lat - lat_step * (np.arange(n) + 0.5)
    grid_lon, grid_lat = np.meshgrid(lons, lats)
    return np.column_stack((grid_lon.ravel(), grid_lat.ravel()))


def validate(
    *,
    source: Path,
    bounds: Rect = ROOT_BOUNDS,
    samples_per_axis: int = 32,
    min_nodes: int = 1,
    min_edges: int = 1,
    max_nearest_dist_deg: float = 0.01,
) -> dict[str, Any]:
    data = build_map_data(source)
    graph = data.graph
    if graph.node_count < min_nodes:
        raise RuntimeError(f"Graph node count too low: {graph.node_count} < {min_nodes}")
    if graph.edge_count < min_edges:
        raise RuntimeError(f"Graph edge count too low: {graph.edge_count} < {min_edges}")

    graph_xy = _graph_points(graph)
    sample_xy = _sample_grid(bounds, samples_per_axis)
    if graph_xy.shape[0] == 0:
        raise RuntimeError("Graph has no nodes after cleaning.")
    tree = cKDTree(graph_xy)
    distances, _indices = tree.query(sample_xy, k=1)
    worst = float(np.max(distances))
    if worst > max_nearest_dist_deg:
        raise RuntimeError(
            f"Graph coverage check failed: sample->nearest-node max distance "
            f"{worst:.6f} deg exceeds threshold {max_nearest_dist_deg:.6f} deg"
        )

    stats = graph.stats()
    return {
        "source": str(source),
        "nodes": stats["nodes"],
        "edges": stats["edges"],
        "components": stats["components"],
        "largest_component_ratio": round(float(stats["largest_component_ratio"]), 4),
        "locations": len(data.locations),
        "samples": int(sample_xy.shape[0]),
        "worst_nearest_node_deg": round(worst, 6),
        "mean_nearest_node_deg": round(float(np.mean(distances)), 6),
        "p95_nearest_node_deg": round(float(np.percentile(distances, 95)), 6),
        "bounds": {
            "ul_lon": bounds.ul_lon,
            "ul_lat": bounds.ul_lat,
            "lr_lon": bounds.lr_lon,
            "lr_lat": bounds.lr_lat,
        },
        "coverage_passed": True,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Validate road graph coverage of the raster root box.")
    parser.add_argument(
        "--source",
        type=Path,
        default=Path("backend/data/berkeley.osm"),
        help="OSM XML dump to ingest.",
    )
    parser.add_argument("--samples-per-axis", type=int, default=32)
    parser.add_argument("--min-nodes", type=int, default=1000)
    parser.add_argument("--min-edges", type=int, default=1000)
    parser.add_argument(
        "--max-nearest-dist-deg",
        type=float,
        default=0.01,
        help="Maximum allowed planar distance from a sample point to its nearest graph node.",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()
    report = validate(
        source=args.source,
        samples_per_axis=max(1, int(args.samples_per_axis)),
        min_nodes=max(1, int(args.min_nodes)),
        min_edges=max(1, int(args.min_edges)),
        max_nearest_dist_deg=max(0.0, float(args.max_nearest_dist_deg)),
    )
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()

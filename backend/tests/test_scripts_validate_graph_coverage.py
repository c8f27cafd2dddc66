from __future__ import annotations

from pathlib import Path

import pytest

import scripts.validate_graph_coverage as validate_graph_coverage
from bearmaps.geometry import Rect

FIXTURE = Path(__file__).parent / "fixtures" / "small_berkeley.osm"
FIXTURE_BOUNDS = Rect(-122.265, 37.875, -122.215, 37.845)


def test_validate_graph_coverage_pass_and_fail_cases() -> None:
    report = validate_graph_coverage.validate(
        source=FIXTURE,
        bounds=FIXTURE_BOUNDS,
        samples_per_axis=4,
        min_nodes=1,
        min_edges=1,
        max_nearest_dist_deg=0.05,
    )
    assert report["coverage_passed"] is True
    assert report["nodes"] == 8
    assert report["edges"] == 7
    assert report["components"] == 3
    assert report["samples"] == 16
    assert 0.0 < report["worst_nearest_node_deg"] <= 0.05
    assert report["mean_nearest_node_deg"] <= report["worst_nearest_node_deg"]

    with pytest.raises(RuntimeError, match="coverage check failed"):
        validate_graph_coverage.validate(
            source=FIXTURE,
            bounds=FIXTURE_BOUNDS,
            samples_per_axis=4,
            max_nearest_dist_deg=0.001,
        )

    with pytest.raises(RuntimeError, match="node count too low"):
        validate_graph_coverage.validate(source=FIXTURE, bounds=FIXTURE_BOUNDS, min_nodes=100)


def test_sample_grid_uses_cell_centres() -> None:
    samples = validate_graph_coverage._sample_grid(Rect(0.0, 2.0, 2.0, 0.0), 2)

    assert samples.shape == (4, 2)
    assert sorted(map(tuple, samples.tolist())) == [(0.5, 0.5), (0.5, 1.5), (1.5, 0.5), (1.5, 1.5)]


def test_parser_defaults() -> None:
    args = validate_graph_coverage.build_parser().parse_args([])
    assert args.source == Path("backend/data/berkeley.osm")
    assert args.samples_per_axis == 32
    assert args.min_nodes == 1000
    assert args.max_nearest_dist_deg == pytest.approx(0.01)

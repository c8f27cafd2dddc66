from __future__ import annotations

import pytest

from bearmaps.geometry import Rect
from bearmaps.quadtree import MAX_DEPTH, OV_LON_DPP, ROOT_BOUNDS, QuadTree

EXPECTED_LON_DPP = (
    0.00034332275390625,
    0.000171661376953125,
    0.0000858306884765625,
    0.00004291534423828125,
    0.000021457672119140625,
    0.000010728836059570312,
    0.000005364418029785156,
    0.000002682209014892578,
)


def test_lon_dpp_table_matches_deployment_constants() -> None:
    assert len(OV_LON_DPP) == MAX_DEPTH + 1
    for got, expected in zip(OV_LON_DPP, EXPECTED_LON_DPP, strict=True):
        assert got == pytest.approx(expected, rel=1e-12)
    for shallow, deep in zip(OV_LON_DPP, OV_LON_DPP[1:]):
        assert deep < shallow
        assert deep == pytest.approx(shallow / 2.0)


def test_full_tree_has_expected_tile_count() -> None:
    tree = QuadTree.build()
    assert tree.tile_count() == (4 ** (MAX_DEPTH + 1) - 1) // 3 == 21_845


def test_children_follow_ul_ur_ll_lr_naming_and_quadrants() -> None:
    tree = QuadTree.build(max_depth=2)
    root = tree.root

    assert root.name == "img/root.png"
    assert root.rect == ROOT_BOUNDS
    assert [child.name for child in root.children] == ["img/1.png", "img/2.png", "img/3.png", "img/4.png"]
    assert [child.name for child in root.children[2].children] == [
        "img/31.png",
        "img/32.png",
        "img/33.png",
        "img/34.png",
    ]
    ul, ur, ll, lr = root.children
    assert ul.rect == ROOT_BOUNDS.quadrant("ul")
    assert ur.rect == ROOT_BOUNDS.quadrant("ur")
    assert ll.rect == ROOT_BOUNDS.quadrant("ll")
    assert lr.rect == ROOT_BOUNDS.quadrant("lr")
    assert all(child.depth == 1 for child in root.children)
    assert all(grandchild.is_leaf for child in root.children for grandchild in child.children)


def test_leaf_names_encode_seven_digit_paths() -> None:
    tree = QuadTree.build()
    tile = tree.root
    while tile.children:
        tile = tile.children[3]
    assert tile.depth == MAX_DEPTH
    assert tile.name == "img/4444444.png"
    stem = tile.name.removeprefix("img/").removesuffix(".png")
    assert len(stem) == MAX_DEPTH
    assert set(stem) <= {"1", "2", "3", "4"}


def test_depth_for_lon_dpp_picks_shallowest_sufficient_depth() -> None:
    tree = QuadTree.build()

    assert tree.depth_for_lon_dpp(1.0) == 0
    assert tree.depth_for_lon_dpp(OV_LON_DPP[0]) == 0
    assert tree.depth_for_lon_dpp(OV_LON_DPP[0] * 0.99) == 1
    assert tree.depth_for_lon_dpp(OV_LON_DPP[3]) == 3
    assert tree.depth_for_lon_dpp(1e-12) == MAX_DEPTH


def test_intersecting_tiles_prunes_and_keeps_dfs_order() -> None:
    tree = QuadTree.build(max_depth=2)
    # A box straddling the centre of the map touches one tile per depth-1 quadrant.
    mid_lon = (ROOT_BOUNDS.ul_lon + ROOT_BOUNDS.lr_lon) / 2.0
    mid_lat = (ROOT_BOUNDS.ul_lat + ROOT_BOUNDS.lr_lat) / 2.0
    query = Rect(mid_lon - 1e-4, mid_lat + 1e-4, mid_lon + 1e-4, mid_lat - 1e-4)

    names = [tile.name for tile in tree.intersecting_tiles(2, query)]

    assert names == ["img/14.png", "img/23.png", "img/32.png", "img/41.png"]
    with pytest.raises(ValueError):
        list(tree.intersecting_tiles(3, query))


def test_build_rejects_malformed_bounds() -> None:
    with pytest.raises(ValueError):
        QuadTree.build(bounds=Rect(1.0, 0.0, 0.0, 1.0))

"""Fixed-depth quadtree naming the pre-rendered map tiles.

Tile ``img/<digits>.png`` encodes its root-to-leaf path, one digit per level:
1 = upper-left, 2 = upper-right, 3 = lower-left, 4 = lower-right. The root
tile is ``img/root.png``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .geometry import Rect

ROOT_BOUNDS = Rect(
    ul_lon=-122.2998046875,
    ul_lat=37.892195547244356,
    lr_lon=-122.2119140625,
    lr_lat=37.82280243352756,
)
ROOT_TILE_NAME = "img/root.png"
TILE_NAME_PREFIX = "img/"
MAX_DEPTH = 7
TILE_SIZE_PX = 256

_QUADRANTS: tuple[tuple[str, str], ...] = (("1", "ul"), ("2", "ur"), ("3", "ll"), ("4", "lr"))


def lon_dpp_table(bounds: Rect = ROOT_BOUNDS, *, max_depth: int = MAX_DEPTH, tile_size_px: int = TILE_SIZE_PX) -> tuple[float, ...]:
    """Longitude degrees per pixel of one tile at each depth; halves per level."""
    return tuple(bounds.width / (tile_size_px * (2**depth)) for depth in range(max_depth + 1))


OV_LON_DPP: tuple[float, ...] = lon_dpp_table()


@dataclass(frozen=True)
class Tile:
    name: str
    depth: int
    ul_lon: float
    ul_lat: float
    lr_lon: float
    lr_lat: float
    children: tuple[Tile, ...] = field(default=(), repr=False, compare=False)

    @property
    def rect(self) -> Rect:
        return Rect(self.ul_lon, self.ul_lat, self.lr_lon, self.lr_lat)

    @property
    def is_leaf(self) -> bool:
        return not self.children


def _build_tile(name: str, stem: str, depth: int, rect: Rect, max_depth: int, prefix: str) -> Tile:
    children: tuple[Tile, ...] = ()
    if depth < max_depth:
        children = tuple(
            _build_tile(
                f"{prefix}{stem}{digit}.png",
                stem + digit,
                depth + 1,
                rect.quadrant(position),
                max_depth,
                prefix,
            )
            for digit, position in _QUADRANTS
        )
    return Tile(
        name=name,
        depth=depth,
        ul_lon=rect.ul_lon,
        ul_lat=rect.ul_lat,
        lr_lon=rect.lr_lon,
        lr_lat=rect.lr_lat,
        children=children,
    )


class QuadTree:
    """The full tile tree, built once at startup and only read afterwards."""

    def __init__(self, root: Tile, ov_lon_dpp: tuple[float, ...]) -> None:
        self.root = root
        self.ov_lon_dpp = ov_lon_dpp
        self.max_depth = len(ov_lon_dpp) - 1

    @classmethod
    def build(
        cls,
        *,
        bounds: Rect = ROOT_BOUNDS,
        root_name: str = ROOT_TILE_NAME,
        max_depth: int = MAX_DEPTH,
        tile_size_px: int = TILE_SIZE_PX,
        prefix: str = TILE_NAME_PREFIX,
    ) -> QuadTree:
        if not bounds.is_well_formed():
            raise ValueError("root bounds must have ul_lon < lr_lon and ul_lat > lr_lat")
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        root = _build_tile(root_name, "", 0, bounds, max_depth, prefix)
        return cls(root, lon_dpp_table(bounds, max_depth=max_depth, tile_size_px=tile_size_px))

    @property
    def bounds(self) -> Rect:
        return self.root.rect

    def depth_for_lon_dpp(self, lon_dpp: float) -> int:
        """Shallowest depth whose tiles are at least as detailed as ``lon_dpp``."""
        for depth, tile_dpp in enumerate(self.ov_lon_dpp):
            if tile_dpp <= lon_dpp:
                return depth
        return self.max_depth

    def intersecting_tiles(self, depth: int, query: Rect) -> Iterator[Tile]:
        """Depth-``depth`` tiles meeting ``query``, in UL, UR, LL, LR depth-first order."""
        if not 0 <= depth <= self.max_depth:
            raise ValueError(f"depth must be within 0..{self.max_depth}")
        if self.root.rect.intersects(query):
            yield from self._descend(self.root, depth, query)

    def _descend(self, tile: Tile, depth: int, query: Rect) -> Iterator[Tile]:
        if tile.depth == depth:
            yield tile
            return
        for child in tile.children:
            if child.rect.intersects(query):
                yield from self._descend(child, depth, query)

    def tile_count(self) -> int:
        count = 0
        stack = [self.root]
        while stack:
            tile = stack.pop()
            count += 1
            stack.extend(tile.children)
        return count

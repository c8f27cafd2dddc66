from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import InvalidQueryError
from .geometry import Rect
from .quadtree import QuadTree, Tile
from .settings import settings

REQUIRED_RASTER_REQUEST_PARAMS: tuple[str, ...] = ("ullon", "ullat", "lrlon", "lrlat", "w", "h")


@dataclass(frozen=True)
class RasterQuery:
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float
    w: float
    h: float

    @property
    def rect(self) -> Rect:
        return Rect(self.ullon, self.ullat, self.lrlon, self.lrlat)

    @property
    def lon_dpp(self) -> float:
        return (self.lrlon - self.ullon) / self.w

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> RasterQuery:
        missing = [key for key in REQUIRED_RASTER_REQUEST_PARAMS if key not in params]
        if missing:
            raise InvalidQueryError(
                f"missing raster parameters: {', '.join(missing)}",
                details={"missing": missing},
            )
        values: dict[str, float] = {}
        for key in REQUIRED_RASTER_REQUEST_PARAMS:
            raw = params[key]
            if isinstance(raw, bool):
                raise InvalidQueryError(f"raster parameter {key} must be a number", details={"param": key})
            try:
                value = float(raw)
            except (TypeError, ValueError) as e:
                raise InvalidQueryError(f"raster parameter {key} must be a number", details={"param": key}) from e
            if not math.isfinite(value):
                raise InvalidQueryError(f"raster parameter {key} must be finite", details={"param": key})
            values[key] = value
        query = cls(**values)
        query.validate()
        return query

    def validate(self) -> None:
        if self.w <= 0 or self.h <= 0:
            raise InvalidQueryError("viewport width and height must be positive", details={"w": self.w, "h": self.h})
        if self.ullon >= self.lrlon or self.ullat <= self.lrlat:
            raise InvalidQueryError(
                "query box must have ullon < lrlon and ullat > lrlat",
                details={"ullon": self.ullon, "ullat": self.ullat, "lrlon": self.lrlon, "lrlat": self.lrlat},
            )


@dataclass(frozen=True)
class RasterResult:
    render_grid: tuple[tuple[str, ...], ...]
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    depth: int
    query_success: bool

    @property
    def bounds(self) -> Rect:
        return Rect(self.raster_ul_lon, self.raster_ul_lat, self.raster_lr_lon, self.raster_lr_lat)

    def as_dict(self) -> dict[str, Any]:
        return {
            "render_grid": [list(row) for row in self.render_grid],
            "raster_ul_lon": self.raster_ul_lon,
            "raster_ul_lat": self.raster_ul_lat,
            "raster_lr_lon": self.raster_lr_lon,
            "raster_lr_lat": self.raster_lr_lat,
            "depth": self.depth,
            "query_success": self.query_success,
        }


def _group_rows(tiles: list[Tile]) -> tuple[tuple[str, ...], ...]:
    # DFS order is already left-to-right within a row; rows go top (largest ul_lat) first.
    rows: dict[float, list[str]] = {}
    for tile in tiles:
        rows.setdefault(tile.ul_lat, []).append(tile.name)
    return tuple(tuple(rows[ul_lat]) for ul_lat in sorted(rows, reverse=True))


class Rasterer:
    """Picks the grid of pre-rendered tiles that best fills a viewport.

    The depth is the shallowest one whose longitude-per-pixel does not exceed
    the query's; the tiles are every tile at that depth meeting the query box.
    """

    def __init__(self, quadtree: QuadTree | None = None) -> None:
        self.quadtree = quadtree if quadtree is not None else QuadTree.build()

    def get_map_raster(self, params: Mapping[str, Any] | RasterQuery) -> RasterResult:
        query = params if isinstance(params, RasterQuery) else RasterQuery.from_params(params)
        if isinstance(params, RasterQuery):
            query.validate()
        depth = self.quadtree.depth_for_lon_dpp(query.lon_dpp)
        tiles = list(self.quadtree.intersecting_tiles(depth, query.rect))
        if not tiles:
            return RasterResult(
                render_grid=(),
                raster_ul_lon=query.ullon,
                raster_ul_lat=query.ullat,
                raster_lr_lon=query.lrlon,
                raster_lr_lat=query.lrlat,
                depth=depth,
                query_success=not settings.raster_empty_query_fails,
            )
        first, last = tiles[0], tiles[-1]
        return RasterResult(
            render_grid=_group_rows(tiles),
            raster_ul_lon=first.ul_lon,
            raster_ul_lat=first.ul_lat,
            raster_lr_lon=last.lr_lon,
            raster_lr_lat=last.lr_lat,
            depth=depth,
            query_success=True,
        )

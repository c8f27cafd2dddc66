from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class LonLat(BaseModel):
    lon: float = Field(..., ge=-180, le=180)
    lat: float = Field(..., ge=-90, le=90)


class GeoJSONLineString(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: list[tuple[float, float]]


class RasterResponse(BaseModel):
    render_grid: list[list[str]]
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    depth: int = Field(..., ge=0, le=7)
    query_success: bool


class RouteResponse(BaseModel):
    """Shortest road path; ``distance_deg`` is planar length in degrees."""

    start: LonLat
    end: LonLat
    nodes: list[int]
    geometry: GeoJSONLineString
    distance_deg: float = Field(..., ge=0.0)
    explored_states: int = Field(..., ge=0)
    cached: bool = False


class PrefixSearchResponse(BaseModel):
    term: str
    results: list[str]


class LocationResult(BaseModel):
    id: int
    lon: float
    lat: float
    name: str


class LocationSearchResponse(BaseModel):
    term: str
    results: list[LocationResult]


class GraphStatsResponse(BaseModel):
    source: str
    nodes: int
    edges: int
    components: int
    largest_component_nodes: int
    largest_component_ratio: float
    locations: int
    tiles: int
    route_cache: dict[str, int]

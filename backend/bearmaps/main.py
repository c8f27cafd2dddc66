from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import MapServiceError
from .graph_db import GraphDB
from .logging_utils import log_event
from .models import (
    GeoJSONLineString,
    GraphStatsResponse,
    LocationResult,
    LocationSearchResponse,
    LonLat,
    PrefixSearchResponse,
    RasterResponse,
    RouteResponse,
)
from .osm_ingest import MapData, load_map_data
from .quadtree import QuadTree
from .rasterer import Rasterer
from .route_cache import cached_or_computed_path, route_cache_stats
from .router import PathResult, astar_path
from .settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.rasterer = Rasterer(QuadTree.build())
    # A dump that fails to parse must keep the server from starting.
    app.state.map_data = await asyncio.to_thread(load_map_data)
    yield


app = FastAPI(title="Bear Maps Server", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def map_data(request: Request) -> MapData:
    data: MapData | None = getattr(request.app.state, "map_data", None)  # type: ignore[attr-defined]
    if data is None:
        raise HTTPException(status_code=503, detail="map data not loaded")
    return data


def rasterer(request: Request) -> Rasterer:
    raster: Rasterer | None = getattr(request.app.state, "rasterer", None)  # type: ignore[attr-defined]
    if raster is None:
        raise HTTPException(status_code=503, detail="rasterer not initialised")
    return raster


MapDataDep = Annotated[MapData, Depends(map_data)]
RastererDep = Annotated[Rasterer, Depends(rasterer)]


def _http_error(err: MapServiceError) -> HTTPException:
    return HTTPException(
        status_code=err.http_status,
        detail={"reason_code": err.reason_code, "message": err.message},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/raster", response_model=RasterResponse)
async def raster(
    raster_service: RastererDep,
    ullon: Annotated[float, Query()],
    ullat: Annotated[float, Query()],
    lrlon: Annotated[float, Query()],
    lrlat: Annotated[float, Query()],
    w: Annotated[float, Query()],
    h: Annotated[float, Query()],
) -> RasterResponse:
    request_id = str(uuid.uuid4())
    t0 = time.perf_counter()
    params = {"ullon": ullon, "ullat": ullat, "lrlon": lrlon, "lrlat": lrlat, "w": w, "h": h}
    try:
        result = raster_service.get_map_raster(params)
    except MapServiceError as e:
        log_event(
            "raster_request",
            level=logging.WARNING,
            request_id=request_id,
            params=params,
            reason_code=e.reason_code,
        )
        raise _http_error(e) from e

    log_event(
        "raster_request",
        request_id=request_id,
        params=params,
        depth=result.depth,
        rows=len(result.render_grid),
        cols=len(result.render_grid[0]) if result.render_grid else 0,
        query_success=result.query_success,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return RasterResponse(**result.as_dict())


def _compute_route(
    graph: GraphDB,
    start_lon: float,
    start_lat: float,
    end_lon: float,
    end_lat: float,
) -> tuple[PathResult, bool]:
    source = graph.closest(start_lon, start_lat)
    dest = graph.closest(end_lon, end_lat)
    return cached_or_computed_path(source, dest, lambda: astar_path(graph, source, dest))


@app.get("/route", response_model=RouteResponse)
async def route(
    data: MapDataDep,
    start_lon: Annotated[float, Query(ge=-180, le=180)],
    start_lat: Annotated[float, Query(ge=-90, le=90)],
    end_lon: Annotated[float, Query(ge=-180, le=180)],
    end_lat: Annotated[float, Query(ge=-90, le=90)],
) -> RouteResponse:
    request_id = str(uuid.uuid4())
    t0 = time.perf_counter()
    graph = data.graph

    try:
        result, cached = await asyncio.to_thread(_compute_route, graph, start_lon, start_lat, end_lon, end_lat)
    except MapServiceError as e:
        log_event(
            "route_request",
            level=logging.WARNING,
            request_id=request_id,
            start=[start_lon, start_lat],
            end=[end_lon, end_lat],
            reason_code=e.reason_code,
            details=e.details or {},
        )
        raise _http_error(e) from e

    if cached:
        log_event("route_cache_hit", request_id=request_id, source=result.nodes[0], dest=result.nodes[-1])
    log_event(
        "route_request",
        request_id=request_id,
        start=[start_lon, start_lat],
        end=[end_lon, end_lat],
        node_count=len(result.nodes),
        distance_deg=result.cost,
        explored_states=result.explored_states,
        cached=cached,
        duration_ms=round((time.perf_counter() - t0) * 1000, 2),
    )
    return RouteResponse(
        start=LonLat(lon=start_lon, lat=start_lat),
        end=LonLat(lon=end_lon, lat=end_lat),
        nodes=list(result.nodes),
        geometry=GeoJSONLineString(coordinates=[(graph.lon(v), graph.lat(v)) for v in result.nodes]),
        distance_deg=result.cost,
        explored_states=result.explored_states,
        cached=cached,
    )


@app.get("/search/prefix", response_model=PrefixSearchResponse)
async def search_prefix(data: MapDataDep, term: Annotated[str, Query(max_length=200)]) -> PrefixSearchResponse:
    results = data.locations.prefix_search(term, limit=settings.search_max_results)
    log_event("search_request", kind="prefix", term=term, result_count=len(results))
    return PrefixSearchResponse(term=term, results=results)


@app.get("/search/locations", response_model=LocationSearchResponse)
async def search_locations(data: MapDataDep, term: Annotated[str, Query(max_length=200)]) -> LocationSearchResponse:
    results = data.locations.get_locations(term)
    log_event("search_request", kind="locations", term=term, result_count=len(results))
    return LocationSearchResponse(term=term, results=[LocationResult(**row) for row in results])


@app.get("/graph/stats", response_model=GraphStatsResponse)
async def graph_stats(data: MapDataDep, raster_service: RastererDep) -> GraphStatsResponse:
    stats = data.graph.stats()
    return GraphStatsResponse(
        source=data.source,
        nodes=stats["nodes"],
        edges=stats["edges"],
        components=stats["components"],
        largest_component_nodes=stats["largest_component_nodes"],
        largest_component_ratio=stats["largest_component_ratio"],
        locations=len(data.locations),
        tiles=raster_service.quadtree.tile_count(),
        route_cache=route_cache_stats(),
    )

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_osm_db_path() -> str:
    # The dump normally sits next to the backend package in local checkouts.
    return str(Path(__file__).resolve().parents[1] / "data" / "berkeley.osm")


class Settings(BaseSettings):
    """Validated settings (env-driven), keeping deployment knobs out of code."""

    model_config = SettingsConfigDict(
        # Support both "repo root/.env" and "backend/.env" (local dev)
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    osm_db_path: str = Field(default_factory=_default_osm_db_path, alias="OSM_DB_PATH")

    out_dir: str = Field(default="/app/out", alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    graph_reject_duplicate_nodes: bool = Field(default=True, alias="GRAPH_REJECT_DUPLICATE_NODES")
    graph_grid_bucket_deg: float = Field(
        default=0.0025,
        gt=0.0,
        le=10.0,
        alias="GRAPH_GRID_BUCKET_DEG",
    )

    # 0 disables the budget; searches then run until the fringe is exhausted.
    route_search_max_states: int = Field(default=0, ge=0, alias="ROUTE_SEARCH_MAX_STATES")
    route_cache_ttl_s: int = Field(default=600, ge=1, alias="ROUTE_CACHE_TTL_S")
    route_cache_max_entries: int = Field(default=1024, ge=1, le=1_000_000, alias="ROUTE_CACHE_MAX_ENTRIES")

    raster_empty_query_fails: bool = Field(default=True, alias="RASTER_EMPTY_QUERY_FAILS")

    search_max_results: int = Field(default=50, ge=1, le=10_000, alias="SEARCH_MAX_RESULTS")

    @model_validator(mode="after")
    def _normalize_log_level(self) -> "Settings":
        self.log_level = str(self.log_level or "INFO").strip().upper() or "INFO"
        return self


settings = Settings()

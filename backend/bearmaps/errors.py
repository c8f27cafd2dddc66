from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "invalid_query",
        "empty_graph",
        "no_route",
        "unknown_node",
        "duplicate_node",
        "graph_frozen",
        "map_data_unavailable",
    }
)

HTTP_STATUS_BY_REASON: dict[str, int] = {
    "invalid_query": 400,
    "empty_graph": 503,
    "no_route": 404,
    "unknown_node": 500,
    "duplicate_node": 500,
    "graph_frozen": 500,
    "map_data_unavailable": 503,
}


@dataclass
class MapServiceError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_REASON.get(normalize_reason_code(self.reason_code), 500)


class InvalidQueryError(MapServiceError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="invalid_query", message=message, details=details)


class EmptyGraphError(MapServiceError):
    def __init__(self, message: str = "graph has no nodes", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="empty_graph", message=message, details=details)


class NoRouteError(MapServiceError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="no_route", message=message, details=details)


class UnknownNodeError(MapServiceError):
    def __init__(self, node_id: int) -> None:
        super().__init__(
            reason_code="unknown_node",
            message=f"unknown node {node_id}",
            details={"node_id": node_id},
        )


class DuplicateNodeError(MapServiceError):
    def __init__(self, node_id: int) -> None:
        super().__init__(
            reason_code="duplicate_node",
            message=f"duplicate node {node_id}",
            details={"node_id": node_id},
        )


class GraphFrozenError(MapServiceError):
    def __init__(self, operation: str) -> None:
        super().__init__(
            reason_code="graph_frozen",
            message=f"graph is frozen; {operation} is not allowed",
            details={"operation": operation},
        )


def normalize_reason_code(reason_code: str, *, default: str = "map_data_unavailable") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default

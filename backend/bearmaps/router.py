from __future__ import annotations

import heapq
import itertools
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import NoRouteError, UnknownNodeError
from .graph_db import GraphDB
from .settings import settings


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[int, ...]
    cost: float
    explored_states: int = 0


def path_length(graph: GraphDB, nodes: Sequence[int]) -> float:
    return sum(graph.distance(a, b) for a, b in zip(nodes, nodes[1:]))


def _reconstruct(edge_to: dict[int, int], source: int, dest: int) -> tuple[int, ...]:
    path = [dest]
    node = dest
    while node != source:
        node = edge_to[node]
        path.append(node)
    path.reverse()
    return tuple(path)


def astar_path(
    graph: GraphDB,
    source: int,
    dest: int,
    *,
    max_state_budget: int | None = None,
) -> PathResult:
    """A* from ``source`` to ``dest`` with straight-line distance as heuristic.

    Fringe entries are never decreased in place. A node may be pushed several
    times; entries whose g-value is worse than the best known ``dist_to`` are
    skipped when popped. The search stops when ``dest`` is popped, which is
    optimal because the heuristic is consistent with the edge weights.
    """
    for node_id in (source, dest):
        if node_id not in graph:
            raise UnknownNodeError(node_id)
    if source == dest:
        return PathResult(nodes=(source,), cost=0.0, explored_states=0)
    if not graph.same_component(source, dest):
        raise NoRouteError(
            f"no route between {source} and {dest}",
            details={"source": source, "dest": dest, "reason": "disconnected_components"},
        )

    budget = settings.route_search_max_states if max_state_budget is None else max_state_budget
    dist_to: dict[int, float] = {source: 0.0}
    edge_to: dict[int, int] = {}
    counter = itertools.count()
    fringe: list[tuple[float, int, float, int]] = [
        (graph.distance(source, dest), next(counter), 0.0, source)
    ]
    explored = 0

    while fringe:
        _priority, _seq, g, v = heapq.heappop(fringe)
        if g > dist_to[v]:
            continue
        if v == dest:
            return PathResult(nodes=_reconstruct(edge_to, source, dest), cost=g, explored_states=explored)
        explored += 1
        if budget and explored > budget:
            raise NoRouteError(
                f"route search gave up after {budget} states",
                details={"source": source, "dest": dest, "reason": "state_budget_exceeded"},
            )
        for u in graph.adjacent(v):
            if u == v:
                continue
            tentative = g + graph.distance(v, u)
            known = dist_to.get(u)
            if known is not None and known <= tentative:
                continue
            dist_to[u] = tentative
            edge_to[u] = v
            heapq.heappush(fringe, (tentative + graph.distance(u, dest), next(counter), tentative, u))

    raise NoRouteError(
        f"no route between {source} and {dest}",
        details={"source": source, "dest": dest, "reason": "fringe_exhausted"},
    )


def shortest_path_with_stats(
    graph: GraphDB,
    stlon: float,
    stlat: float,
    destlon: float,
    destlat: float,
    *,
    max_state_budget: int | None = None,
) -> PathResult:
    source = graph.closest(stlon, stlat)
    dest = graph.closest(destlon, destlat)
    return astar_path(graph, source, dest, max_state_budget=max_state_budget)


def shortest_path(graph: GraphDB, stlon: float, stlat: float, destlon: float, destlat: float) -> list[int]:
    """Node ids from the node nearest the start to the node nearest the destination."""
    return list(shortest_path_with_stats(graph, stlon, stlat, destlon, destlat).nodes)

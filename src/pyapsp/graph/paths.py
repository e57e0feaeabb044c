"""Route reconstruction from a finished predecessor matrix."""

from __future__ import annotations

from typing import Iterator

import numpy as np
from numpy.typing import NDArray

from pyapsp.core.exceptions import ValueRangeError
from pyapsp.core.graph import GraphData
from pyapsp.core.types import NO_PREDECESSOR, SENTINEL_DISTANCE


def iter_predecessors(
    path: NDArray[np.int32], start: int, end: int
) -> Iterator[int]:
    """
    Walk the predecessor chain from ``end`` back towards ``start``.

    Yields ``end`` first, then path[start, end], path[start, that], ...
    and stops after yielding ``start``. Stops early (without reaching
    ``start``) when a vertex has no predecessor or after n steps, which
    only happens for matrices that are not the output of a finished run.

    Example:
        >>> list(iter_predecessors(graph.path, 0, 3))
        [3, 2, 1, 0]
    """
    n = path.shape[0]
    current = end
    yield current
    for _ in range(n):
        if current == start:
            return
        current = int(path[start, current])
        if current == NO_PREDECESSOR:
            return
        yield current


def reconstruct_path(
    path: NDArray[np.int32], start: int, end: int
) -> list[int] | None:
    """
    Reconstruct the vertex sequence of a shortest route.

    Args:
        path: Predecessor matrix produced by calculate_apsp
        start: Source vertex
        end: Destination vertex

    Returns:
        List of vertices from ``start`` to ``end`` inclusive, ``[start]``
        when start == end, or None if ``end`` is unreachable from ``start``
    """
    n = path.shape[0]
    for v in (start, end):
        if not 0 <= v < n:
            raise ValueRangeError(f"Vertex {v} out of range for a graph with {n} vertices")
    if start == end:
        return [start]
    if path[start, end] == NO_PREDECESSOR:
        return None

    route = list(iter_predecessors(path, start, end))
    if route[-1] != start:
        # Chain broken or cyclic
        return None
    route.reverse()
    return route


def path_weight(
    graph: GraphData, route: list[int], sentinel: float = SENTINEL_DISTANCE
) -> float:
    """
    Sum the direct edge weights along ``route``.

    Pass the graph as it was before the run: hops are looked up in its
    distance matrix, so the total is the length of the route in the
    input graph and should equal the finished distance.

    Returns:
        Total weight, or inf if some hop is not an edge
    """
    if len(route) < 2:
        return 0.0
    src = np.asarray(route[:-1])
    dst = np.asarray(route[1:])
    hops = graph.dist[src, dst]
    if np.any(hops >= sentinel):
        return float("inf")
    return float(np.sum(hops, dtype=np.float64))

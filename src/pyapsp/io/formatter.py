"""JSON rendering of finished distance and predecessor matrices."""

from __future__ import annotations

import json
from typing import Any

import numpy as np

from pyapsp.core.graph import GraphData
from pyapsp.core.types import SENTINEL_DISTANCE

# Rendered in place of the sentinel for unreachable pairs
UNREACHABLE = -1


def to_nested_lists(
    graph: GraphData, sentinel: float = SENTINEL_DISTANCE
) -> dict[str, list[list[Any]]]:
    """
    Convert a finished graph to plain lists.

    Distances are rounded to 2 decimals; pairs at or above the sentinel
    are rendered as -1. Predecessors are copied as-is.

    Returns:
        {"distances": [[...]], "path": [[...]]}
    """
    dist = np.round(graph.dist.astype(np.float64), 2)
    unreachable = graph.dist >= sentinel
    distances = [
        [UNREACHABLE if unreachable[i, j] else float(dist[i, j]) for j in range(graph.num_vertices)]
        for i in range(graph.num_vertices)
    ]
    return {"distances": distances, "path": graph.path.tolist()}


def format_result(
    graph: GraphData,
    sentinel: float = SENTINEL_DISTANCE,
    indent: int | None = None,
) -> str:
    """
    Render a finished graph as a JSON object.

    Example:
        >>> print(format_result(graph))
        {"distances": [[0.0, 1.0], [-1, 0.0]], "path": [[-1, 0], [-1, -1]]}
    """
    return json.dumps(to_nested_lists(graph, sentinel), indent=indent)

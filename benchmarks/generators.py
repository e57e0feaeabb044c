"""Synthetic graph generators for scaling benchmarks."""

from typing import Literal

import numpy as np
from numpy.typing import NDArray

from pyapsp import GraphData
from pyapsp.core.types import DIST_DTYPE, NO_PREDECESSOR, PATH_DTYPE, SENTINEL_DISTANCE


def generate_benchmark_graph(
    num_vertices: int,
    density: float = 0.1,
    graph_type: Literal["random", "grid", "chain"] = "random",
    seed: int = 42,
) -> GraphData:
    """
    Generate a benchmark graph at the specified scale.

    Args:
        num_vertices: Number of vertices n
        density: Probability of each directed edge (random graphs only)
        graph_type: Shape of the graph
        seed: Random seed for reproducibility

    Returns:
        GraphData holding the direct edges
    """
    rng = np.random.default_rng(seed)

    if graph_type == "random":
        mask = rng.random((num_vertices, num_vertices)) < density
    elif graph_type == "grid":
        mask = _grid_mask(num_vertices)
    elif graph_type == "chain":
        mask = np.eye(num_vertices, k=1, dtype=bool)
    else:
        raise ValueError(f"Unknown graph_type: {graph_type}")

    weights = rng.uniform(1.0, 100.0, size=(num_vertices, num_vertices))
    return _from_mask(mask, weights)


def _grid_mask(n: int) -> NDArray[np.bool_]:
    """Bidirectional 4-neighbour grid, as square as n allows."""
    side = int(np.ceil(np.sqrt(n)))
    mask = np.zeros((n, n), dtype=bool)
    for v in range(n):
        row, col = divmod(v, side)
        for dr, dc in ((0, 1), (1, 0), (0, -1), (-1, 0)):
            r, c = row + dr, col + dc
            u = r * side + c
            if 0 <= r and 0 <= c < side and u < n:
                mask[v, u] = True
    return mask


def _from_mask(mask: NDArray[np.bool_], weights: NDArray[np.float64]) -> GraphData:
    """Build matrices directly; edge-by-edge insertion is too slow for large n."""
    n = mask.shape[0]
    np.fill_diagonal(mask, False)
    dist = np.where(mask, weights, SENTINEL_DISTANCE).astype(DIST_DTYPE)
    np.fill_diagonal(dist, 0.0)
    path = np.where(mask, np.arange(n)[:, None], NO_PREDECESSOR).astype(PATH_DTYPE)
    return GraphData(dist=dist, path=path)

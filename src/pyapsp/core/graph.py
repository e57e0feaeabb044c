"""Dense graph store consumed and mutated in place by the APSP engine.

The store holds the row-major distance and predecessor matrices described
in the package overview:

    dist[i][i] = 0                  path[i][i] = -1
    dist[i][j] = w  (edge i->j)     path[i][j] = i
    dist[i][j] = sentinel           path[i][j] = -1   (no known path)
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np
from numpy.typing import NDArray

from pyapsp.core.exceptions import (
    DataQualityWarning,
    DimensionError,
    NaNInfError,
    ValueRangeError,
)
from pyapsp.core.types import (
    DIST_DTYPE,
    NO_PREDECESSOR,
    PATH_DTYPE,
    SENTINEL_DISTANCE,
    DistanceMatrix,
    Edge,
    PredecessorMatrix,
)


@dataclass
class GraphData:
    """
    Distance and predecessor matrices of a dense directed graph.

    Arrays that already are C-contiguous float32 / int32 are stored as-is,
    so the engine writes its results straight into the caller's buffers.
    Anything else is converted to a fresh array on construction.

    Attributes:
        dist: n x n float32 distance matrix
        path: n x n int32 predecessor matrix
        num_vertices: n (derived from the matrix shape)

    Example:
        >>> graph = GraphData.from_edges(4, [(0, 1, 1.0), (1, 2, 1.0), (2, 3, 1.0)])
        >>> graph.num_vertices
        4
        >>> float(graph.dist[0, 1]), int(graph.path[0, 1])
        (1.0, 0)
    """

    dist: DistanceMatrix
    path: PredecessorMatrix
    num_vertices: int = field(init=False)

    def __post_init__(self) -> None:
        """Coerce dtypes and validate matrix invariants."""
        self.dist = np.ascontiguousarray(self.dist, dtype=DIST_DTYPE)
        self.path = np.ascontiguousarray(self.path, dtype=PATH_DTYPE)
        self._validate()
        self.num_vertices = int(self.dist.shape[0])

    def _validate(self) -> None:
        """Validate shapes, value ranges, and diagonal invariants."""
        dist, path = self.dist, self.path
        if dist.ndim != 2 or dist.shape[0] != dist.shape[1]:
            raise DimensionError(
                f"dist must be a square 2D matrix, got shape {dist.shape}"
            )
        if path.shape != dist.shape:
            raise DimensionError(
                f"path shape {path.shape} does not match dist shape {dist.shape}"
            )
        n = dist.shape[0]

        nan_mask = np.isnan(dist)
        if np.any(nan_mask):
            raise NaNInfError(
                f"Found {int(np.sum(nan_mask))} NaN distances at positions "
                f"{_preview(nan_mask)}. Use the sentinel distance for missing edges."
            )

        negative = dist < 0
        if np.any(negative):
            raise ValueRangeError(
                f"Found {int(np.sum(negative))} negative distances at positions "
                f"{_preview(negative)}. Edge weights must be non-negative."
            )

        diag = np.arange(n)
        if np.any(dist[diag, diag] != 0):
            bad = np.flatnonzero(dist[diag, diag] != 0)[:5].tolist()
            raise ValueRangeError(
                f"Self distances must be 0, found non-zero diagonal at vertices {bad}"
            )
        if np.any(path[diag, diag] != NO_PREDECESSOR):
            bad = np.flatnonzero(path[diag, diag] != NO_PREDECESSOR)[:5].tolist()
            raise ValueRangeError(
                f"Self predecessors must be {NO_PREDECESSOR}, found other values "
                f"at vertices {bad}"
            )

        out_of_range = (path < NO_PREDECESSOR) | (path >= n)
        if np.any(out_of_range):
            raise ValueRangeError(
                f"Found {int(np.sum(out_of_range))} predecessor indices outside "
                f"[-1, {n}) at positions {_preview(out_of_range)}"
            )

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls, num_vertices: int, sentinel: float = SENTINEL_DISTANCE) -> GraphData:
        """Graph with no edges: every off-diagonal pair is unreachable."""
        if num_vertices < 0:
            raise ValueRangeError(f"num_vertices must be >= 0, got {num_vertices}")
        dist = np.full((num_vertices, num_vertices), sentinel, dtype=DIST_DTYPE)
        np.fill_diagonal(dist, 0.0)
        path = np.full((num_vertices, num_vertices), NO_PREDECESSOR, dtype=PATH_DTYPE)
        return cls(dist=dist, path=path)

    @classmethod
    def from_edges(
        cls,
        num_vertices: int,
        edges: Iterable[Edge],
        sentinel: float = SENTINEL_DISTANCE,
    ) -> GraphData:
        """
        Build a graph from (src, dst, weight) triples.

        Parallel edges keep the lightest weight. Self loops are dropped
        since self distances are always 0.

        Args:
            num_vertices: Number of vertices n
            edges: Iterable of (src, dst, weight)
            sentinel: Distance used for unreachable pairs

        Returns:
            GraphData initialized with the direct edges only
        """
        graph = cls.empty(num_vertices, sentinel)
        self_loops = 0
        for src, dst, weight in edges:
            if src == dst:
                graph._check_vertex(src)
                self_loops += 1
                continue
            graph.add_edge(src, dst, weight, sentinel=sentinel)
        if self_loops:
            warnings.warn(
                f"Dropped {self_loops} self loop(s); self distances are always 0.",
                DataQualityWarning,
                stacklevel=2,
            )
        return graph

    def add_edge(
        self,
        src: int,
        dst: int,
        weight: float,
        sentinel: float = SENTINEL_DISTANCE,
    ) -> None:
        """Insert a direct edge, keeping the lighter weight for parallel edges."""
        self._check_vertex(src)
        self._check_vertex(dst)
        if src == dst:
            raise ValueRangeError(f"Self loop on vertex {src} cannot be stored")
        weight = float(weight)
        if np.isnan(weight) or weight < 0:
            raise ValueRangeError(
                f"Edge {src}->{dst} has invalid weight {weight}; weights must be "
                f"non-negative numbers"
            )
        if weight >= sentinel:
            warnings.warn(
                f"Edge {src}->{dst} weight {weight} is not below the sentinel "
                f"distance {sentinel}; it is treated as unreachable.",
                DataQualityWarning,
                stacklevel=2,
            )
            return
        if weight < self.dist[src, dst]:
            self.dist[src, dst] = weight
            self.path[src, dst] = src

    def _check_vertex(self, v: int) -> None:
        if not 0 <= v < self.dist.shape[0]:
            raise ValueRangeError(
                f"Vertex {v} out of range for a graph with {self.dist.shape[0]} vertices"
            )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def copy(self) -> GraphData:
        """Deep copy of both matrices."""
        return GraphData(dist=self.dist.copy(), path=self.path.copy())

    def unreachable_mask(self, sentinel: float = SENTINEL_DISTANCE) -> NDArray[np.bool_]:
        """Boolean n x n mask of pairs with no known path."""
        return self.dist >= sentinel

    @property
    def num_known_paths(self) -> int:
        """Off-diagonal pairs with a predecessor (edges before a run, routes after)."""
        return int(np.sum(self.path != NO_PREDECESSOR))


def _preview(mask: NDArray[np.bool_], limit: int = 5) -> str:
    positions = [tuple(int(x) for x in p) for p in np.argwhere(mask)[:limit]]
    more = "..." if int(np.sum(mask)) > limit else ""
    return f"{positions}{more}"

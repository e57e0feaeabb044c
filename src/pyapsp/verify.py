"""Correctness checks for finished APSP runs.

Checks a result against the properties every run must satisfy and against
an independent solver:

    - diagonal: dist[i][i] == 0 and path[i][i] == -1
    - triangle inequality over every intermediate vertex
    - predecessor chains end at the source and add up to the distance
    - unreachable pairs keep the sentinel distance and no predecessor
    - distances agree with scipy.sparse.csgraph.floyd_warshall
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.sparse.csgraph import csgraph_from_dense, floyd_warshall

from pyapsp._kernels import (
    check_predecessor_chains,
    count_triangle_violations,
    floyd_warshall_serial,
)
from pyapsp.core.exceptions import DimensionError
from pyapsp.core.graph import GraphData
from pyapsp.core.mixins import ResultSummaryMixin
from pyapsp.core.types import DIST_DTYPE, NO_PREDECESSOR, SENTINEL_DISTANCE

logger = logging.getLogger(__name__)

# float32 sums of a few hundred hops drift by a few ulps
DEFAULT_TOLERANCE = 1e-4


def _clamped(dist: NDArray[np.float32], sentinel: float) -> NDArray[np.float32]:
    return np.ascontiguousarray(np.minimum(dist, DIST_DTYPE(sentinel)), dtype=DIST_DTYPE)


def reference_apsp(graph: GraphData, sentinel: float = SENTINEL_DISTANCE) -> GraphData:
    """
    Solve APSP with the plain O(n^3) Floyd-Warshall on the host.

    Uses the same relaxation and tie rule as the blocked kernels, so on
    inputs without equal-length alternative routes the predecessors match
    too. The input graph is not modified.

    Args:
        graph: Input graph
        sentinel: Unreachable distance

    Returns:
        New GraphData holding the reference distances and predecessors
    """
    result = GraphData(dist=_clamped(graph.dist, sentinel), path=graph.path.copy())
    floyd_warshall_serial(result.dist, result.path, DIST_DTYPE(sentinel))
    return result


def scipy_distances(graph: GraphData, sentinel: float = SENTINEL_DISTANCE) -> NDArray[np.float64]:
    """Distances from scipy's Floyd-Warshall, inf for unreachable pairs."""
    dense = graph.dist.astype(np.float64)
    dense[dense >= sentinel] = np.inf
    csgraph = csgraph_from_dense(dense, null_value=np.inf)
    return floyd_warshall(csgraph, directed=True)


@dataclass(frozen=True)
class VerificationReport:
    """
    Outcome of :func:`verify_result`.

    Attributes:
        num_vertices: Vertex count of the checked graph
        num_diagonal_errors: Diagonal cells with dist != 0 or path != -1
        num_triangle_violations: Pairs improvable through some vertex
        num_invalid_paths: Pairs whose predecessor chain is broken or
            does not add up to the distance
        first_invalid_path: First such (i, j), if any
        num_sentinel_errors: Pairs whose reachability disagrees with the
            reference solver, or unreachable pairs not holding exactly
            (sentinel, -1)
        num_distance_mismatches: Reachable pairs whose distance differs
            from scipy's beyond the tolerance
        max_abs_error: Largest absolute distance difference to scipy
        computation_time_ms: Time spent verifying
    """

    num_vertices: int
    num_diagonal_errors: int
    num_triangle_violations: int
    num_invalid_paths: int
    first_invalid_path: tuple[int, int] | None
    num_sentinel_errors: int
    num_distance_mismatches: int
    max_abs_error: float
    computation_time_ms: float

    @property
    def failed_checks(self) -> list[str]:
        """Names of the checks that found at least one problem."""
        counts = {
            "diagonal": self.num_diagonal_errors,
            "triangle inequality": self.num_triangle_violations,
            "predecessor chains": self.num_invalid_paths,
            "sentinel preservation": self.num_sentinel_errors,
            "scipy cross-check": self.num_distance_mismatches,
        }
        return [name for name, count in counts.items() if count]

    @property
    def is_valid(self) -> bool:
        return not self.failed_checks

    def summary(self) -> str:
        """Return human-readable verification report."""
        m = ResultSummaryMixin
        lines = [m._format_header("APSP VERIFICATION REPORT")]
        lines.append(f"\nStatus: {'VALID' if self.is_valid else 'INVALID'}")

        lines.append(m._format_section("Properties"))
        lines.append(m._format_metric("Vertices", self.num_vertices))
        lines.append(m._format_metric("Diagonal Errors", self.num_diagonal_errors))
        lines.append(m._format_metric("Triangle Violations", self.num_triangle_violations))
        lines.append(m._format_metric("Invalid Paths", self.num_invalid_paths))
        if self.first_invalid_path is not None:
            lines.append(m._format_metric("First Invalid Path", self.first_invalid_path))
        lines.append(m._format_metric("Sentinel Errors", self.num_sentinel_errors))

        lines.append(m._format_section("Cross-check (scipy)"))
        lines.append(m._format_metric("Mismatched Distances", self.num_distance_mismatches))
        lines.append(m._format_metric("Max Abs Error", self.max_abs_error))

        if not self.is_valid:
            lines.append(m._format_section("Failed Checks"))
            lines.append(m._format_list(self.failed_checks, item_name="check"))

        lines.append(m._format_footer(self.computation_time_ms))
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "num_vertices": self.num_vertices,
            "num_diagonal_errors": self.num_diagonal_errors,
            "num_triangle_violations": self.num_triangle_violations,
            "num_invalid_paths": self.num_invalid_paths,
            "first_invalid_path": self.first_invalid_path,
            "num_sentinel_errors": self.num_sentinel_errors,
            "num_distance_mismatches": self.num_distance_mismatches,
            "max_abs_error": self.max_abs_error,
            "computation_time_ms": self.computation_time_ms,
        }


def verify_result(
    input_graph: GraphData,
    output_graph: GraphData,
    sentinel: float = SENTINEL_DISTANCE,
    tolerance: float = DEFAULT_TOLERANCE,
) -> VerificationReport:
    """
    Check a finished run against the APSP invariants and scipy.

    Args:
        input_graph: Graph as it was before the run (direct edges only)
        output_graph: The same graph after calculate_apsp
        sentinel: Unreachable distance used for the run
        tolerance: Relative tolerance for distance comparisons

    Returns:
        VerificationReport; check ``report.is_valid``

    Example:
        >>> before = graph.copy()
        >>> calculate_apsp(graph)
        >>> verify_result(before, graph).is_valid
        True
    """
    if input_graph.num_vertices != output_graph.num_vertices:
        raise DimensionError(
            f"Input has {input_graph.num_vertices} vertices, output has "
            f"{output_graph.num_vertices}"
        )
    start_time = time.perf_counter()
    n = output_graph.num_vertices
    dist = output_graph.dist
    path = output_graph.path
    sentinel32 = DIST_DTYPE(sentinel)

    diag = np.arange(n)
    num_diagonal_errors = int(
        np.sum((dist[diag, diag] != 0) | (path[diag, diag] != NO_PREDECESSOR))
    )

    num_triangle = int(count_triangle_violations(dist, sentinel32, tolerance))

    edges = _clamped(input_graph.dist, sentinel)
    num_invalid, first_i, first_j = check_predecessor_chains(
        dist, path, edges, sentinel32, tolerance
    )
    first_invalid = (int(first_i), int(first_j)) if num_invalid else None

    expected = scipy_distances(input_graph, sentinel)
    expected_unreachable = np.isinf(expected)
    unreachable = dist >= sentinel
    num_sentinel_errors = int(np.sum(expected_unreachable != unreachable))
    num_sentinel_errors += int(
        np.sum(unreachable & ((dist != sentinel32) | (path != NO_PREDECESSOR)))
    )

    both = ~expected_unreachable & ~unreachable
    if np.any(both):
        error = np.abs(dist[both].astype(np.float64) - expected[both])
        allowed = tolerance * np.maximum(1.0, np.abs(expected[both]))
        num_mismatches = int(np.sum(error > allowed))
        max_abs_error = float(error.max())
    else:
        num_mismatches = 0
        max_abs_error = 0.0

    computation_time = (time.perf_counter() - start_time) * 1000
    report = VerificationReport(
        num_vertices=n,
        num_diagonal_errors=num_diagonal_errors,
        num_triangle_violations=num_triangle,
        num_invalid_paths=int(num_invalid),
        first_invalid_path=first_invalid,
        num_sentinel_errors=num_sentinel_errors,
        num_distance_mismatches=num_mismatches,
        max_abs_error=max_abs_error,
        computation_time_ms=computation_time,
    )
    if not report.is_valid:
        logger.warning("APSP verification failed: %s", report.to_dict())
    return report

"""Tests for GraphData construction and validation."""

import typing
import warnings

import numpy as np
import pytest

from pyapsp import DataQualityWarning, GraphData
from pyapsp.core.exceptions import DimensionError, NaNInfError, ValueRangeError
from pyapsp.core.types import (
    DIST_DTYPE,
    NO_PREDECESSOR,
    PATH_DTYPE,
    SENTINEL_DISTANCE,
    DistanceMatrix,
    PredecessorMatrix,
)
from pyapsp.engine.memory import pad_matrices


def square(n, fill=SENTINEL_DISTANCE):
    dist = np.full((n, n), fill, dtype=np.float32)
    np.fill_diagonal(dist, 0.0)
    return dist, np.full((n, n), NO_PREDECESSOR, dtype=np.int32)


class TestValidation:
    """Invariants checked on construction."""

    def test_not_square(self):
        with pytest.raises(DimensionError):
            GraphData(dist=np.zeros((3, 4)), path=np.zeros((3, 4)))

    def test_shape_mismatch(self):
        dist, _ = square(4)
        with pytest.raises(DimensionError):
            GraphData(dist=dist, path=np.full((4, 3), -1))

    def test_nan(self):
        dist, path = square(3)
        dist[0, 1] = np.nan
        with pytest.raises(NaNInfError):
            GraphData(dist=dist, path=path)

    def test_negative(self):
        dist, path = square(3)
        dist[0, 1] = -1.0
        with pytest.raises(ValueRangeError, match="negative"):
            GraphData(dist=dist, path=path)

    def test_nonzero_diagonal(self):
        dist, path = square(3)
        dist[1, 1] = 2.0
        with pytest.raises(ValueRangeError):
            GraphData(dist=dist, path=path)

    def test_diagonal_predecessor(self):
        dist, path = square(3)
        path[2, 2] = 2
        with pytest.raises(ValueRangeError):
            GraphData(dist=dist, path=path)

    def test_predecessor_out_of_range(self):
        dist, path = square(3)
        path[0, 1] = 3
        with pytest.raises(ValueRangeError):
            GraphData(dist=dist, path=path)

    def test_infinity_accepted(self):
        dist, path = square(3, fill=np.inf)
        graph = GraphData(dist=dist, path=path)
        assert graph.unreachable_mask().sum() == 6

    def test_matching_arrays_not_copied(self):
        dist, path = square(3)
        graph = GraphData(dist=dist, path=path)
        assert graph.dist is dist
        assert graph.path is path

    def test_other_dtypes_converted(self):
        graph = GraphData(dist=np.zeros((2, 2)), path=np.full((2, 2), -1, dtype=np.int64))
        assert graph.dist.dtype == np.float32
        assert graph.path.dtype == np.int32
        assert graph.num_vertices == 2


class TestFromEdges:
    """Initialization from an edge list."""

    def test_initialization_rule(self):
        graph = GraphData.from_edges(3, [(0, 1, 2.5), (2, 0, 1.0)])

        assert graph.dist[0, 1] == 2.5 and graph.path[0, 1] == 0
        assert graph.dist[2, 0] == 1.0 and graph.path[2, 0] == 2
        assert graph.dist[1, 0] == SENTINEL_DISTANCE and graph.path[1, 0] == NO_PREDECESSOR
        assert np.all(np.diag(graph.dist) == 0)
        assert np.all(np.diag(graph.path) == NO_PREDECESSOR)
        assert graph.num_known_paths == 2

    def test_parallel_edges_keep_lightest(self):
        graph = GraphData.from_edges(2, [(0, 1, 5.0), (0, 1, 2.0), (0, 1, 7.0)])
        assert graph.dist[0, 1] == 2.0

    def test_self_loops_dropped_with_warning(self):
        with pytest.warns(DataQualityWarning, match="self loop"):
            graph = GraphData.from_edges(2, [(0, 0, 3.0), (0, 1, 1.0)])
        assert graph.dist[0, 0] == 0

    def test_weight_at_sentinel_warns(self):
        with pytest.warns(DataQualityWarning, match="sentinel"):
            graph = GraphData.from_edges(2, [(0, 1, SENTINEL_DISTANCE)])
        assert graph.path[0, 1] == NO_PREDECESSOR

    def test_clean_edges_do_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DataQualityWarning)
            GraphData.from_edges(3, [(0, 1, 1.0), (1, 2, 1.0)])

    @pytest.mark.parametrize("edge", [(0, 3, 1.0), (-1, 0, 1.0), (0, 1, -2.0), (0, 1, float("nan"))])
    def test_bad_edges(self, edge):
        with pytest.raises(ValueRangeError):
            GraphData.from_edges(3, [edge])

    def test_empty(self):
        graph = GraphData.empty(3)
        assert graph.num_known_paths == 0
        assert graph.unreachable_mask().sum() == 6

    def test_copy_is_deep(self):
        graph = GraphData.from_edges(2, [(0, 1, 1.0)])
        clone = graph.copy()
        clone.dist[0, 1] = 9.0
        assert graph.dist[0, 1] == 1.0


class TestMatrixTypes:
    """Stored matrices match the declared matrix types."""

    def test_fields_are_declared_as_matrix_types(self):
        hints = typing.get_type_hints(GraphData)
        assert hints["dist"] == DistanceMatrix
        assert hints["path"] == PredecessorMatrix

    def test_padding_returns_matrix_types(self):
        hints = typing.get_type_hints(pad_matrices)
        assert hints["return"] == tuple[DistanceMatrix, PredecessorMatrix]

    def test_inputs_are_coerced(self):
        """float64 / int64 input is stored as the declared dtypes."""
        dist = np.zeros((3, 3))
        path = np.full((3, 3), -1, dtype=np.int64)

        graph = GraphData(dist=dist, path=path)

        assert graph.dist.dtype == DIST_DTYPE
        assert graph.path.dtype == PATH_DTYPE
        assert graph.dist.flags.c_contiguous

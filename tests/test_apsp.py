"""Tests for calculate_apsp on the CPU backend."""

import numpy as np
import pytest

from pyapsp import (
    EngineConfig,
    GraphData,
    RunStatus,
    TooSmallError,
    calculate_apsp,
)
from pyapsp._kernels import build_phase_kernels, relax_cell
from pyapsp.core.types import NO_PREDECESSOR, SENTINEL_DISTANCE
from pyapsp.graph.paths import reconstruct_path
from pyapsp.verify import reference_apsp, scipy_distances, verify_result


class TestScenarios:
    """Small graphs with known answers."""

    def test_four_vertex_chain(self, chain_graph, small_config):
        """dist[0][3] = 3 along 0 -> 1 -> 2 -> 3."""
        result = calculate_apsp(chain_graph, small_config)

        assert result.is_success
        assert chain_graph.dist[0, 3] == 3.0
        assert chain_graph.path[0, 3] == 2
        assert chain_graph.path[0, 2] == 1
        assert chain_graph.path[0, 1] == 0
        assert reconstruct_path(chain_graph.path, 0, 3) == [0, 1, 2, 3]

    def test_chain_has_no_backward_routes(self, chain_graph, small_config):
        """Nothing reaches an earlier vertex of a forward chain."""
        calculate_apsp(chain_graph, small_config)

        lower = np.tril_indices(4, k=-1)
        assert np.all(chain_graph.dist[lower] == SENTINEL_DISTANCE)
        assert np.all(chain_graph.path[lower] == NO_PREDECESSOR)

    @pytest.mark.parametrize("block_size", [2, 4, 8])
    def test_chain_across_two_tiles(self, block_size, chain_edges):
        """A chain of exactly 2*B vertices crosses the tile boundary once."""
        n = 2 * block_size
        graph = GraphData.from_edges(n, chain_edges(n))

        calculate_apsp(graph, EngineConfig(block_size=block_size))

        assert graph.dist[0, n - 1] == n - 1
        assert graph.path[0, n - 1] == n - 2
        assert reconstruct_path(graph.path, 0, n - 1) == list(range(n))

    def test_disconnected_pair_keeps_sentinel(self, small_config):
        """Two components never gain a route between them."""
        edges = [(0, 1, 2.0), (1, 0, 2.0), (2, 3, 5.0), (3, 2, 5.0)]
        graph = GraphData.from_edges(4, edges)

        calculate_apsp(graph, small_config)

        for i, j in [(0, 2), (0, 3), (1, 2), (2, 0), (3, 1)]:
            assert graph.dist[i, j] == SENTINEL_DISTANCE
            assert graph.path[i, j] == NO_PREDECESSOR
        assert graph.dist[0, 1] == 2.0
        assert graph.dist[3, 2] == 5.0

    def test_shortcut_through_longer_route(self, small_config):
        """A two-hop route beats a heavy direct edge."""
        edges = [(0, 3, 10.0), (0, 1, 1.0), (1, 3, 2.0), (2, 0, 1.0)]
        graph = GraphData.from_edges(4, edges)

        calculate_apsp(graph, small_config)

        assert graph.dist[0, 3] == 3.0
        assert graph.path[0, 3] == 1
        assert graph.dist[2, 3] == 4.0
        assert reconstruct_path(graph.path, 2, 3) == [2, 0, 1, 3]

    def test_zero_weight_edges(self, small_config):
        edges = [(0, 1, 0.0), (1, 2, 0.0), (2, 3, 1.5)]
        graph = GraphData.from_edges(4, edges)

        calculate_apsp(graph, small_config)

        assert graph.dist[0, 2] == 0.0
        assert graph.dist[0, 3] == 1.5


class TestBoundary:
    """Vertex counts that are not a multiple of the tile side."""

    def test_seventeen_vertices_with_tile_eight(self, random_graph):
        """17 vertices pad to 24; padding never leaks into the result."""
        graph = random_graph(17, density=0.3, seed=3)
        expected = reference_apsp(graph)
        original = graph.copy()

        result = calculate_apsp(graph, EngineConfig(block_size=8))

        assert result.padded_size == 24
        assert result.num_padding_vertices == 7
        assert graph.dist.shape == (17, 17)
        np.testing.assert_array_equal(graph.dist, expected.dist)
        assert verify_result(original, graph).is_valid

    def test_default_tile_size(self, medium_graph):
        """37 vertices with B=16 pad to 48."""
        original = medium_graph.copy()

        result = calculate_apsp(medium_graph)

        assert result.block_size == 16
        assert result.padded_size == 48
        assert result.num_blocks == 3
        assert result.num_launches == 9
        assert verify_result(original, medium_graph).is_valid

    def test_too_small_graph(self, chain_edges):
        """Fewer than 2*B vertices is rejected before any work."""
        graph = GraphData.from_edges(17, chain_edges(17))
        before = graph.copy()

        with pytest.raises(TooSmallError) as exc_info:
            calculate_apsp(graph, EngineConfig(block_size=16))

        assert exc_info.value.status == RunStatus.TOO_SMALL
        np.testing.assert_array_equal(graph.dist, before.dist)
        np.testing.assert_array_equal(graph.path, before.path)

    def test_exactly_two_tiles_is_accepted(self):
        graph = GraphData.empty(4)
        result = calculate_apsp(graph, EngineConfig(block_size=2))
        assert result.num_blocks == 2


class TestProperties:
    """Invariants every finished run must satisfy."""

    @pytest.fixture
    def solved(self, random_graph):
        graph = random_graph(40, density=0.1, seed=11, integer_weights=False)
        original = graph.copy()
        calculate_apsp(graph, EngineConfig(block_size=8))
        return original, graph

    def test_diagonal(self, solved):
        _, graph = solved
        assert np.all(np.diag(graph.dist) == 0)
        assert np.all(np.diag(graph.path) == NO_PREDECESSOR)

    def test_matches_scipy(self, solved):
        original, graph = solved
        expected = scipy_distances(original)
        reachable = np.isfinite(expected)

        np.testing.assert_allclose(graph.dist[reachable], expected[reachable], rtol=1e-5)
        assert np.all(graph.dist[~reachable] == SENTINEL_DISTANCE)

    def test_verification_passes(self, solved):
        """Triangle inequality, predecessor chains and sentinels all hold."""
        original, graph = solved
        report = verify_result(original, graph)

        assert report.is_valid, report.summary()

    def test_idempotent(self, random_graph):
        """Running on a finished result changes nothing, bit for bit."""
        graph = random_graph(24, density=0.2, seed=5)
        config = EngineConfig(block_size=4)
        calculate_apsp(graph, config)
        first_dist = graph.dist.copy()
        first_path = graph.path.copy()

        calculate_apsp(graph, config)

        np.testing.assert_array_equal(graph.dist, first_dist)
        np.testing.assert_array_equal(graph.path, first_path)

    def test_distances_independent_of_tile_size(self, random_graph):
        base = random_graph(33, density=0.2, seed=9)
        results = []
        for block_size in (2, 4, 8, 16):
            graph = base.copy()
            calculate_apsp(graph, EngineConfig(block_size=block_size))
            results.append(graph.dist)

        for dist in results[1:]:
            np.testing.assert_array_equal(dist, results[0])

    def test_dense_graph(self, random_graph):
        graph = random_graph(48, density=1.0, seed=1, integer_weights=False)
        original = graph.copy()

        calculate_apsp(graph, EngineConfig(block_size=16))

        assert verify_result(original, graph).is_valid


class TestInPlace:
    """Results land in the caller's arrays."""

    def test_caller_arrays_are_written(self, small_config):
        dist = np.full((4, 4), SENTINEL_DISTANCE, dtype=np.float32)
        np.fill_diagonal(dist, 0.0)
        path = np.full((4, 4), -1, dtype=np.int32)
        dist[0, 1], path[0, 1] = 1.0, 0
        dist[1, 2], path[1, 2] = 1.0, 1
        graph = GraphData(dist=dist, path=path)

        calculate_apsp(graph, small_config)

        assert graph.dist is dist
        assert dist[0, 2] == 2.0
        assert path[0, 2] == 1

    def test_infinity_is_treated_as_unreachable(self, small_config):
        dist = np.full((4, 4), np.inf)
        np.fill_diagonal(dist, 0.0)
        path = np.full((4, 4), -1)
        dist[0, 1], path[0, 1] = 4.0, 0
        graph = GraphData(dist=dist, path=path)

        calculate_apsp(graph, small_config)

        assert graph.dist[0, 1] == 4.0
        assert graph.dist[1, 0] == SENTINEL_DISTANCE
        assert graph.path[1, 0] == NO_PREDECESSOR

    def test_custom_sentinel(self, chain_edges):
        config = EngineConfig(block_size=2, sentinel=50.0)
        graph = GraphData.from_edges(4, chain_edges(4, weight=10.0), sentinel=50.0)

        calculate_apsp(graph, config)

        assert graph.dist[0, 3] == 30.0
        assert graph.dist[3, 0] == 50.0


class TestSentinelArithmetic:
    """Unreachable operands never produce a route."""

    def test_sum_reaching_sentinel_stays_unreachable(self):
        """30 + 30 is finite but not below a sentinel of 50."""
        config = EngineConfig(block_size=2, sentinel=50.0)
        graph = GraphData.from_edges(4, [(0, 1, 30.0), (1, 2, 30.0)], sentinel=50.0)

        calculate_apsp(graph, config)

        assert graph.dist[0, 1] == 30.0
        assert graph.dist[1, 2] == 30.0
        assert graph.dist[0, 2] == 50.0
        assert graph.path[0, 2] == NO_PREDECESSOR

    def test_sum_just_below_sentinel_is_kept(self):
        config = EngineConfig(block_size=2, sentinel=50.0)
        graph = GraphData.from_edges(4, [(0, 1, 30.0), (1, 2, 19.5)], sentinel=50.0)

        calculate_apsp(graph, config)

        assert graph.dist[0, 2] == 49.5
        assert graph.path[0, 2] == 1

    def test_relax_cell_skips_sentinel_operand(self):
        """A finite weight added to an unreachable half is not a candidate."""
        dist = np.array(
            [[0.0, 50.0, 100.0], [50.0, 0.0, 1.0], [50.0, 50.0, 0.0]],
            dtype=np.float32,
        )
        path = np.full((3, 3), NO_PREDECESSOR, dtype=np.int32)
        path[1, 2] = 1

        relax_cell(dist, path, 0, 2, 1, 50.0)

        assert dist[0, 2] == 100.0
        assert path[0, 2] == NO_PREDECESSOR

    def test_independent_phase_skips_sentinel_operand(self):
        """The collapsed single-pass phase applies the same rule."""
        _, _, independent = build_phase_kernels(2, 50.0)
        dist = np.full((4, 4), 50.0, dtype=np.float32)
        np.fill_diagonal(dist, 0.0)
        path = np.full((4, 4), NO_PREDECESSOR, dtype=np.int32)
        dist[2, 3] = 100.0
        dist[0, 3], path[0, 3] = 1.0, 0

        independent(0, 2, dist, path)

        assert dist[2, 3] == 100.0
        assert path[2, 3] == NO_PREDECESSOR

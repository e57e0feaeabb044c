"""Pytest fixtures for PyAPSP tests."""

from collections import Counter

import numpy as np
import pytest

from pyapsp import EngineConfig, GraphData
from pyapsp.core.exceptions import DeviceError, DeviceStage
from pyapsp.engine.backends import CpuBackend


def make_chain_edges(num_vertices: int, weight: float = 1.0) -> list[tuple[int, int, float]]:
    """Edges 0 -> 1 -> ... -> n-1, all with the same weight."""
    return [(v, v + 1, weight) for v in range(num_vertices - 1)]


def make_random_graph(
    num_vertices: int,
    density: float = 0.3,
    seed: int = 42,
    integer_weights: bool = True,
) -> GraphData:
    """
    Random directed graph.

    Integer weights keep every sum exact in float32, so runs with different
    tile sizes produce bit-identical distances.
    """
    rng = np.random.default_rng(seed)
    mask = rng.random((num_vertices, num_vertices)) < density
    np.fill_diagonal(mask, False)
    if integer_weights:
        weights = rng.integers(1, 20, size=(num_vertices, num_vertices)).astype(float)
    else:
        weights = rng.uniform(0.1, 10.0, size=(num_vertices, num_vertices))
    src, dst = np.nonzero(mask)
    edges = [(int(s), int(d), float(weights[s, d])) for s, d in zip(src, dst)]
    return GraphData.from_edges(num_vertices, edges)


@pytest.fixture
def chain_edges():
    """Factory for forward chain edge lists."""
    return make_chain_edges


@pytest.fixture
def random_graph():
    """Factory for seeded random graphs with integer weights by default."""
    return make_random_graph


@pytest.fixture
def chain_graph() -> GraphData:
    """
    Four vertices in a line: 0 -> 1 -> 2 -> 3, unit weights.

    Every vertex reaches the ones after it; nothing reaches backwards.
    """
    return GraphData.from_edges(4, make_chain_edges(4))


@pytest.fixture
def small_config() -> EngineConfig:
    """Tile side 2, so the four-vertex chain spans two tiles."""
    return EngineConfig(block_size=2)


@pytest.fixture
def medium_graph() -> GraphData:
    """37 vertices: not a multiple of any tested tile side."""
    return make_random_graph(37, density=0.15, seed=7)


class FaultyBackend(CpuBackend):
    """
    CPU backend that counts driver calls and can fail one stage on demand.

    Args:
        fail_stage: Stage to fail, or None for a clean run
        fail_after: Number of calls of that stage that succeed first
    """

    def __init__(self, fail_stage: DeviceStage | None = None, fail_after: int = 0) -> None:
        super().__init__()
        self.fail_stage = fail_stage
        self.fail_after = fail_after
        self.calls: Counter = Counter()
        self.live: set[int] = set()
        self.closed = False

    def _maybe_fail(self, stage: DeviceStage) -> None:
        self.calls[stage] += 1
        if stage == self.fail_stage and self.calls[stage] > self.fail_after:
            raise DeviceError(stage, "injected failure", code=-5)

    def discover(self, config):
        self._maybe_fail(DeviceStage.DISCOVERY)
        return super().discover(config)

    def compile(self, config):
        self._maybe_fail(DeviceStage.COMPILATION)
        return super().compile(config)

    def allocate(self, shape, dtype):
        self._maybe_fail(DeviceStage.ALLOCATION)
        handle = super().allocate(shape, dtype)
        self.live.add(id(handle))
        return handle

    def upload(self, handle, host):
        self._maybe_fail(DeviceStage.UPLOAD)
        super().upload(handle, host)

    def launch(self, kernel, geometry, block_id, num_blocks, dist, path):
        self._maybe_fail(DeviceStage.LAUNCH)
        super().launch(kernel, geometry, block_id, num_blocks, dist, path)

    def download(self, handle):
        self._maybe_fail(DeviceStage.READBACK)
        return super().download(handle)

    def free(self, handle):
        self._maybe_fail(DeviceStage.RELEASE)
        self.live.discard(id(handle))
        super().free(handle)

    def close(self):
        self.closed = True
        super().close()


@pytest.fixture
def faulty_backend():
    """Factory for FaultyBackend instances."""
    return FaultyBackend

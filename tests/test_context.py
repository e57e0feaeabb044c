"""Tests for DeviceContext lifecycle and failure handling."""

import logging

import numpy as np
import pytest

from pyapsp import (
    CapabilitiesExceededError,
    DeviceContext,
    DeviceError,
    DeviceStage,
    EngineConfig,
    GraphData,
    InvalidConfigError,
    RunStatus,
    TooSmallError,
    calculate_apsp,
)


@pytest.fixture
def graph(random_graph):
    return random_graph(12, density=0.3, seed=21)


@pytest.fixture
def config():
    return EngineConfig(block_size=4)


class TestLifecycle:
    """Acquire, reuse and release."""

    def test_acquire_opens(self, config):
        context = DeviceContext.acquire(config)
        try:
            assert context.is_open
            assert context.device.backend == "cpu"
            assert context.kernels.block_size == 4
        finally:
            context.release()
        assert not context.is_open

    def test_release_is_idempotent(self, config):
        context = DeviceContext.acquire(config)
        context.release()
        context.release()
        assert not context.is_open

    def test_context_manager_releases(self, config, faulty_backend):
        backend = faulty_backend()
        with DeviceContext(config, backend) as context:
            assert context.is_open
        assert backend.closed
        assert not context.is_open

    def test_reuse_across_calls(self, config, graph, faulty_backend):
        """One compile serves many runs."""
        backend = faulty_backend()
        with DeviceContext(config, backend) as context:
            first = calculate_apsp(graph.copy(), context=context)
            second = calculate_apsp(graph.copy(), context=context)

        assert backend.calls[DeviceStage.COMPILATION] == 1
        assert backend.calls[DeviceStage.DISCOVERY] == 1
        assert first.num_launches == second.num_launches == 9

    def test_run_opens_lazily(self, config, graph, faulty_backend):
        context = DeviceContext(config, faulty_backend())
        assert not context.is_open
        context.run(graph)
        assert context.is_open
        context.release()

    def test_config_mismatch_is_rejected(self, config, graph):
        with DeviceContext(config) as context:
            with pytest.raises(InvalidConfigError):
                calculate_apsp(graph, EngineConfig(block_size=2), context=context)

    def test_matching_config_is_accepted(self, config, graph):
        with DeviceContext(config) as context:
            result = calculate_apsp(graph, EngineConfig(block_size=4), context=context)
        assert result.is_success

    def test_unknown_backend(self):
        with pytest.raises(InvalidConfigError):
            EngineConfig(backend="opencl")

    def test_repr(self, config):
        context = DeviceContext(config)
        assert "closed" in repr(context)
        assert "B=4" in repr(context)

    def test_logs_acquisition(self, config, caplog):
        with caplog.at_level(logging.INFO, logger="pyapsp"):
            with DeviceContext(config):
                pass
        assert any("Acquired cpu device" in r.message for r in caplog.records)


class TestFailures:
    """Every failing stage aborts cleanly with its own status."""

    def _run(self, config, graph, backend):
        with DeviceContext(config, backend) as context:
            return context.run(graph)

    @pytest.mark.parametrize(
        "stage, fail_after",
        [
            (DeviceStage.DISCOVERY, 0),
            (DeviceStage.COMPILATION, 0),
            (DeviceStage.ALLOCATION, 0),
            (DeviceStage.ALLOCATION, 1),
            (DeviceStage.UPLOAD, 1),
            (DeviceStage.LAUNCH, 0),
            (DeviceStage.LAUNCH, 4),
            (DeviceStage.READBACK, 0),
            (DeviceStage.READBACK, 1),
        ],
    )
    def test_stage_failure_leaves_graph_untouched(
        self, config, graph, stage, fail_after, faulty_backend
    ):
        """No partial result: the caller's matrices are as before."""
        before = graph.copy()
        backend = faulty_backend(stage, fail_after)

        with pytest.raises(DeviceError) as exc_info:
            self._run(config, graph, backend)

        assert exc_info.value.stage == stage
        assert exc_info.value.status == stage.status
        assert exc_info.value.code == -5
        np.testing.assert_array_equal(graph.dist, before.dist)
        np.testing.assert_array_equal(graph.path, before.path)
        assert backend.live == set()

    def test_compilation_failure_allocates_nothing(self, config, graph, faulty_backend):
        backend = faulty_backend(DeviceStage.COMPILATION)

        with pytest.raises(DeviceError):
            self._run(config, graph, backend)

        assert backend.calls[DeviceStage.ALLOCATION] == 0
        assert backend.closed

    def test_launch_failure_stops_submissions(self, config, graph, faulty_backend):
        backend = faulty_backend(DeviceStage.LAUNCH, fail_after=2)

        with pytest.raises(DeviceError):
            self._run(config, graph, backend)

        assert backend.calls[DeviceStage.LAUNCH] == 3

    def test_release_failure_does_not_mask_original(self, config, graph, caplog, faulty_backend):
        """A launch error stays the reported error even if freeing fails too."""

        class DoubleFault(faulty_backend):
            def free(self, handle):
                raise DeviceError(DeviceStage.RELEASE, "free failed")

        backend = DoubleFault(DeviceStage.LAUNCH)

        with caplog.at_level(logging.WARNING, logger="pyapsp"):
            with pytest.raises(DeviceError) as exc_info:
                self._run(config, graph, backend)

        assert exc_info.value.stage == DeviceStage.LAUNCH
        assert any("free failed" in r.message for r in caplog.records)

    def test_release_failure_after_success_is_reported(self, config, graph, faulty_backend):
        backend = faulty_backend(DeviceStage.RELEASE)

        with pytest.raises(DeviceError) as exc_info:
            self._run(config, graph, backend)

        assert exc_info.value.status == RunStatus.RELEASE_FAILED

    def test_too_small_checked_before_device(self, config, chain_edges, faulty_backend):
        backend = faulty_backend()
        context = DeviceContext(config, backend)
        graph = GraphData.from_edges(7, chain_edges(7))

        with pytest.raises(TooSmallError):
            context.run(graph)

        assert backend.calls[DeviceStage.DISCOVERY] == 0

    def test_too_many_threads(self):
        import numba

        config = EngineConfig(block_size=4, num_threads=numba.config.NUMBA_NUM_THREADS + 1)
        with pytest.raises(CapabilitiesExceededError) as exc_info:
            DeviceContext.acquire(config)
        assert exc_info.value.limit == "num_threads"
        assert exc_info.value.status == RunStatus.CAPABILITIES_EXCEEDED

    def test_context_survives_failed_run(self, config, graph, faulty_backend):
        """A failure inside run() does not close an open context."""
        backend = faulty_backend(DeviceStage.LAUNCH)
        with DeviceContext(config, backend) as context:
            with pytest.raises(DeviceError):
                context.run(graph.copy())
            backend.fail_stage = None
            result = context.run(graph)
        assert result.is_success

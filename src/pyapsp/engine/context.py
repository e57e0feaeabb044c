"""Device context: one acquired device plus its compiled phase kernels.

A context is an explicit object passed to the calls that use it; there is
no process-wide device state. It is not thread-safe: run one call at a
time per context, or give each thread its own context.
"""

from __future__ import annotations

import logging
import time

from pyapsp.config import EngineConfig
from pyapsp.core.exceptions import DeviceError, InvalidConfigError
from pyapsp.core.graph import GraphData
from pyapsp.core.result import APSPResult
from pyapsp.engine.backends import Backend, DeviceInfo, PhaseKernels, create_backend
from pyapsp.engine.memory import MatrixBuffers
from pyapsp.engine.scheduler import (
    BlockScheduler,
    LaunchCallback,
    check_capabilities,
    plan_schedule,
)

logger = logging.getLogger(__name__)


class DeviceContext:
    """
    Owns one device and the three kernels compiled for it.

    Kernels are compiled when the context is opened, before any buffer
    exists, so a compilation failure can never leak device memory.

    Args:
        config: Engine settings; ``config.block_size`` is compiled into
            the kernels
        backend: Backend instance to use instead of the one named by
            ``config.backend``

    Example:
        >>> with DeviceContext(EngineConfig(block_size=16)) as ctx:
        ...     for graph in graphs:
        ...         ctx.run(graph)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        backend: Backend | None = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.backend = backend if backend is not None else create_backend(self.config.backend)
        self._device: DeviceInfo | None = None
        self._kernels: PhaseKernels | None = None

    @classmethod
    def acquire(
        cls,
        config: EngineConfig | None = None,
        backend: Backend | None = None,
    ) -> DeviceContext:
        """Create and open a context in one step."""
        context = cls(config, backend)
        context.open()
        return context

    @property
    def is_open(self) -> bool:
        return self._kernels is not None

    @property
    def device(self) -> DeviceInfo | None:
        return self._device

    @property
    def kernels(self) -> PhaseKernels | None:
        return self._kernels

    def open(self) -> None:
        """Discover the device and compile the kernels. Idempotent."""
        if self.is_open:
            return
        try:
            self._device = self.backend.discover(self.config)
            self._kernels = self.backend.compile(self.config)
        except Exception:
            self._release_quietly()
            raise
        logger.info(
            "Acquired %s device %r, kernels compiled for %dx%d tiles",
            self._device.backend,
            self._device.name,
            self.config.block_size,
            self.config.block_size,
        )

    def run(
        self,
        graph: GraphData,
        on_launch: LaunchCallback | None = None,
    ) -> APSPResult:
        """
        Compute all-pairs shortest paths for ``graph`` in place.

        On success ``graph.dist`` and ``graph.path`` hold the final
        distances and predecessors. On any error they are left unchanged.

        Args:
            graph: Graph store, borrowed for the duration of the call
            on_launch: Optional callback invoked after each kernel submission

        Returns:
            APSPResult describing the run

        Raises:
            TooSmallError: If the graph has fewer than 2 * block_size vertices
            CapabilitiesExceededError: If the device cannot host the launches
            DeviceError: If a driver call fails
        """
        plan = plan_schedule(graph.num_vertices, self.config.block_size)
        self.open()
        check_capabilities(self._device.capabilities, plan)
        scheduler = BlockScheduler(self.backend, self._kernels, plan, on_launch)

        logger.info(
            "Running blocked Floyd-Warshall: n=%d padded=%d B=%d pivots=%d",
            plan.num_vertices,
            plan.padded_size,
            plan.block_size,
            plan.num_blocks,
        )
        start_time = time.perf_counter()
        with MatrixBuffers(self.backend, graph, plan.block_size, self.config.sentinel) as buffers:
            launches = scheduler.run(buffers)
            buffers.copy_out(graph)
        computation_time = (time.perf_counter() - start_time) * 1000
        logger.info("Finished %d launches in %.2f ms", launches, computation_time)

        return APSPResult(
            num_vertices=plan.num_vertices,
            padded_size=plan.padded_size,
            block_size=plan.block_size,
            num_blocks=plan.num_blocks,
            num_launches=launches,
            backend=self._device.backend,
            device_name=self._device.name,
            computation_time_ms=computation_time,
        )

    def release(self) -> None:
        """Drop the kernels and release the device. Safe to call twice."""
        self._kernels = None
        self._device = None
        self.backend.close()

    def _release_quietly(self) -> None:
        try:
            self.release()
        except DeviceError as exc:
            logger.warning("Ignoring %s while releasing a failed context", exc)

    def __enter__(self) -> DeviceContext:
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.release()
        else:
            self._release_quietly()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"DeviceContext({self.config.backend}, B={self.config.block_size}, {state})"


def resolve_context(
    config: EngineConfig | None,
    context: DeviceContext | None,
) -> DeviceContext | None:
    """Check that an explicit config agrees with an explicit context."""
    if context is not None and config is not None and config != context.config:
        raise InvalidConfigError(
            "Pass either a config or a context whose config matches, not both."
        )
    return context

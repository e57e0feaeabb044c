"""Three-phase block scheduling for blocked Floyd-Warshall.

For every pivot block k = 0 .. num_blocks-1 the scheduler submits, in
this order and to a single in-order command stream:

    A  dependent            pivot block B(k, k)
    B  partially dependent  pivot row and pivot column blocks
    C  independent          every remaining block

Phase C of iteration k completes before phase A of iteration k+1
starts. After iteration k every cell whose block row or block column is
at most k holds its shortest distance over intermediates in blocks <= k.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

from pyapsp.core.exceptions import (
    CapabilitiesExceededError,
    InvalidConfigError,
    TooSmallError,
)
from pyapsp.engine.backends import Backend, DeviceCapabilities, PhaseKernels
from pyapsp.engine.memory import MatrixBuffers, padded_size

logger = logging.getLogger(__name__)


class Phase(Enum):
    """Kernel variants launched once per pivot iteration."""

    DEPENDENT = "dependent"
    PARTIALLY_DEPENDENT = "partially_dependent"
    INDEPENDENT = "independent"


PHASE_ORDER = (Phase.DEPENDENT, Phase.PARTIALLY_DEPENDENT, Phase.INDEPENDENT)

LaunchCallback = Callable[[int, Phase], None]


@dataclass(frozen=True)
class LaunchGeometry:
    """
    Work-item layout of one launch.

    Attributes:
        global_size: Work-items along (x, y); x runs over columns
        local_size: Work-items per group along (x, y)
    """

    global_size: tuple[int, int]
    local_size: tuple[int, int]

    @property
    def groups(self) -> tuple[int, int]:
        """Groups along (x, y)."""
        return (
            self.global_size[0] // self.local_size[0],
            self.global_size[1] // self.local_size[1],
        )

    @property
    def num_work_items(self) -> int:
        return self.global_size[0] * self.global_size[1]


@dataclass(frozen=True)
class SchedulePlan:
    """
    Sizing of one run, derived from the vertex count and the tile side.

    Attributes:
        num_vertices: Real vertex count n
        block_size: Tile side B
        padded_size: n rounded up to a multiple of B
        num_blocks: Tiles per matrix side, also the number of pivot iterations
    """

    num_vertices: int
    block_size: int
    padded_size: int
    num_blocks: int

    @property
    def num_launches(self) -> int:
        return len(PHASE_ORDER) * self.num_blocks

    def geometry(self, phase: Phase) -> LaunchGeometry:
        """Launch geometry for ``phase``; identical for every pivot."""
        B = self.block_size
        local = (B, B)
        if phase is Phase.DEPENDENT:
            return LaunchGeometry((B, B), local)
        if phase is Phase.PARTIALLY_DEPENDENT:
            # y group 0 is the pivot row, y group 1 the pivot column
            return LaunchGeometry((self.padded_size, 2 * B), local)
        return LaunchGeometry((self.padded_size, self.padded_size), local)

    def launches(self) -> Iterator[tuple[int, Phase]]:
        """Yield (pivot block, phase) in submission order."""
        for block_id in range(self.num_blocks):
            for phase in PHASE_ORDER:
                yield block_id, phase


def plan_schedule(num_vertices: int, block_size: int) -> SchedulePlan:
    """
    Size the padded grid and pivot iterations for a graph.

    Raises:
        TooSmallError: If num_vertices < 2 * block_size
    """
    if num_vertices < 2 * block_size:
        raise TooSmallError(num_vertices, block_size)
    size = padded_size(num_vertices, block_size)
    return SchedulePlan(
        num_vertices=num_vertices,
        block_size=block_size,
        padded_size=size,
        num_blocks=size // block_size,
    )


def check_capabilities(capabilities: DeviceCapabilities, plan: SchedulePlan) -> None:
    """
    Check that a device can host every launch of ``plan``.

    Raises:
        CapabilitiesExceededError: Naming the first limit that is exceeded
    """
    B = plan.block_size
    if capabilities.max_dimensions < 2:
        raise CapabilitiesExceededError(
            f"Device supports {capabilities.max_dimensions} work dimension(s); "
            f"blocked Floyd-Warshall needs 2.",
            limit="max_dimensions",
        )
    for axis in range(2):
        if capabilities.max_group_extent[axis] < B:
            raise CapabilitiesExceededError(
                f"Tile side {B} exceeds the device group extent "
                f"{capabilities.max_group_extent[axis]} along axis {axis}.",
                limit="max_group_extent",
            )
    if capabilities.max_group_threads < B * B:
        raise CapabilitiesExceededError(
            f"A {B}x{B} tile needs {B * B} work-items per group; the device "
            f"allows {capabilities.max_group_threads}.",
            limit="max_group_threads",
        )
    for phase in PHASE_ORDER:
        groups = plan.geometry(phase).groups
        for axis in range(2):
            if groups[axis] > capabilities.max_grid_extent[axis]:
                raise CapabilitiesExceededError(
                    f"{phase.value} phase needs {groups[axis]} groups along axis "
                    f"{axis}; the device allows {capabilities.max_grid_extent[axis]}.",
                    limit="max_grid_extent",
                )


class BlockScheduler:
    """
    Drives the pivot iterations of one run over device-resident matrices.

    Args:
        backend: Backend owning the command stream
        kernels: Compiled phase kernels; their tile size must match the plan
        plan: Sizing of the run
        on_launch: Optional callback invoked after each submission with
            (pivot block, phase)
    """

    def __init__(
        self,
        backend: Backend,
        kernels: PhaseKernels,
        plan: SchedulePlan,
        on_launch: LaunchCallback | None = None,
    ) -> None:
        if kernels.block_size != plan.block_size:
            raise InvalidConfigError(
                f"Kernels were compiled for block_size={kernels.block_size} but the "
                f"plan uses block_size={plan.block_size}."
            )
        self.backend = backend
        self.kernels = kernels
        self.plan = plan
        self.on_launch = on_launch

    def run(self, buffers: MatrixBuffers) -> int:
        """
        Submit all 3 * num_blocks launches and wait for them to finish.

        Returns:
            Number of launches submitted
        """
        plan = self.plan
        geometries = {phase: plan.geometry(phase) for phase in PHASE_ORDER}
        dist = buffers.dist.handle
        path = buffers.path.handle

        launched = 0
        for block_id, phase in plan.launches():
            if phase is Phase.DEPENDENT:
                logger.debug("Pivot %d/%d", block_id + 1, plan.num_blocks)
            self.backend.launch(
                self.kernels.for_phase(phase),
                geometries[phase],
                block_id,
                plan.num_blocks,
                dist,
                path,
            )
            launched += 1
            if self.on_launch is not None:
                self.on_launch(block_id, phase)

        self.backend.synchronize()
        return launched

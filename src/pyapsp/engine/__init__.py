"""Device context, memory transfer layer and block scheduler."""

from pyapsp.engine.backends import (
    Backend,
    CpuBackend,
    CudaBackend,
    DeviceCapabilities,
    DeviceInfo,
    PhaseKernels,
    create_backend,
)
from pyapsp.engine.context import DeviceContext
from pyapsp.engine.memory import DeviceBuffer, MatrixBuffers, pad_matrices, padded_size
from pyapsp.engine.scheduler import (
    PHASE_ORDER,
    BlockScheduler,
    LaunchGeometry,
    Phase,
    SchedulePlan,
    check_capabilities,
    plan_schedule,
)

__all__ = [
    "Backend",
    "CpuBackend",
    "CudaBackend",
    "DeviceCapabilities",
    "DeviceInfo",
    "PhaseKernels",
    "create_backend",
    "DeviceContext",
    "DeviceBuffer",
    "MatrixBuffers",
    "pad_matrices",
    "padded_size",
    "PHASE_ORDER",
    "BlockScheduler",
    "LaunchGeometry",
    "Phase",
    "SchedulePlan",
    "check_capabilities",
    "plan_schedule",
]

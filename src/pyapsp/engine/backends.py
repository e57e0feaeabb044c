"""Parallel substrates the blocked Floyd-Warshall kernels run on.

A backend wraps one device's driver calls: discovery, kernel compilation,
buffer allocation, transfers and launches. Every driver failure is turned
into a :class:`~pyapsp.core.exceptions.DeviceError` tagged with the stage
it happened in; nothing is retried.

Backends:
    - CpuBackend: numba parallel kernels on the host thread pool
    - CudaBackend: numba CUDA kernels on one NVIDIA accelerator
"""

from __future__ import annotations

import logging
import platform
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

import numpy as np
from numba.core.errors import NumbaError

from pyapsp.config import EngineConfig
from pyapsp.core.exceptions import (
    CapabilitiesExceededError,
    DeviceError,
    DeviceStage,
    InvalidConfigError,
)

if TYPE_CHECKING:
    from pyapsp.engine.scheduler import LaunchGeometry, Phase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceCapabilities:
    """
    Parallelism limits of a device, in accelerator terms.

    Attributes:
        max_dimensions: Number of work-item dimensions a launch may use
        max_group_extent: Work-items per group along each dimension
        max_group_threads: Work-items per group in total
        max_grid_extent: Groups per launch along each dimension
    """

    max_dimensions: int
    max_group_extent: tuple[int, ...]
    max_group_threads: int
    max_grid_extent: tuple[int, ...]


@dataclass(frozen=True)
class DeviceInfo:
    """The one device a context acquired."""

    name: str
    backend: str
    capabilities: DeviceCapabilities


class PhaseKernels(NamedTuple):
    """Compiled kernels, one per phase, all with the same tile size."""

    dependent: Callable[..., Any]
    partially_dependent: Callable[..., Any]
    independent: Callable[..., Any]
    block_size: int

    def for_phase(self, phase: Phase) -> Callable[..., Any]:
        return getattr(self, phase.value)


class Backend(ABC):
    """Driver interface used by the context, memory layer and scheduler."""

    name: str = "abstract"

    @abstractmethod
    def discover(self, config: EngineConfig) -> DeviceInfo:
        """Acquire one capable device."""

    @abstractmethod
    def compile(self, config: EngineConfig) -> PhaseKernels:
        """Build the three phase kernels for ``config.block_size``."""

    @abstractmethod
    def allocate(self, shape: tuple[int, int], dtype: np.dtype) -> Any:
        """Allocate an uninitialized device matrix and return its handle."""

    @abstractmethod
    def upload(self, handle: Any, host: np.ndarray) -> None:
        """Copy a host matrix into a device buffer."""

    @abstractmethod
    def download(self, handle: Any) -> np.ndarray:
        """Copy a device buffer into a new host array."""

    @abstractmethod
    def free(self, handle: Any) -> None:
        """Release a device buffer."""

    @abstractmethod
    def launch(
        self,
        kernel: Callable[..., Any],
        geometry: LaunchGeometry,
        block_id: int,
        num_blocks: int,
        dist: Any,
        path: Any,
    ) -> None:
        """Submit one kernel launch to the in-order command stream."""

    def synchronize(self) -> None:
        """Block until every submitted launch has completed."""

    def close(self) -> None:
        """Release device-level resources."""


# =============================================================================
# CPU BACKEND
# =============================================================================

# A tile is swept by a single worker thread, so group limits only bound
# the size of one tile in memory.
CPU_CAPABILITIES = DeviceCapabilities(
    max_dimensions=3,
    max_group_extent=(4096, 4096, 4096),
    max_group_threads=4096 * 4096,
    max_grid_extent=(2**31 - 1, 2**31 - 1, 2**31 - 1),
)

_cpu_kernel_cache: dict[tuple[int, float], PhaseKernels] = {}


class CpuBackend(Backend):
    """Host backend: tiles are distributed over the numba thread pool.

    Launches run synchronously in submission order, which is the in-order
    command stream the scheduler relies on.
    """

    name = "cpu"

    def __init__(self) -> None:
        self._num_threads: int | None = None

    def discover(self, config: EngineConfig) -> DeviceInfo:
        import numba

        available = numba.config.NUMBA_NUM_THREADS
        if config.num_threads is not None and config.num_threads > available:
            raise CapabilitiesExceededError(
                f"Requested {config.num_threads} threads but numba was started "
                f"with {available}. Set NUMBA_NUM_THREADS before importing numba.",
                limit="num_threads",
            )
        self._num_threads = config.num_threads
        threads = config.num_threads or numba.get_num_threads()
        cpu = platform.processor() or platform.machine() or "unknown"
        return DeviceInfo(
            name=f"CPU {cpu} ({threads} threads)",
            backend=self.name,
            capabilities=CPU_CAPABILITIES,
        )

    def compile(self, config: EngineConfig) -> PhaseKernels:
        from pyapsp._kernels import build_phase_kernels

        key = (config.block_size, config.sentinel)
        if key in _cpu_kernel_cache:
            return _cpu_kernel_cache[key]
        logger.debug("Compiling CPU kernels for block_size=%d", config.block_size)
        try:
            kernels = PhaseKernels(
                *build_phase_kernels(config.block_size, config.sentinel),
                block_size=config.block_size,
            )
        except NumbaError as exc:
            raise DeviceError(DeviceStage.COMPILATION, str(exc)) from exc
        _cpu_kernel_cache[key] = kernels
        return kernels

    def allocate(self, shape: tuple[int, int], dtype: np.dtype) -> np.ndarray:
        try:
            return np.empty(shape, dtype=dtype)
        except MemoryError as exc:
            raise DeviceError(
                DeviceStage.ALLOCATION, f"cannot allocate {shape} {np.dtype(dtype)} matrix"
            ) from exc

    def upload(self, handle: np.ndarray, host: np.ndarray) -> None:
        try:
            np.copyto(handle, host, casting="no")
        except (TypeError, ValueError) as exc:
            raise DeviceError(DeviceStage.UPLOAD, str(exc)) from exc

    def download(self, handle: np.ndarray) -> np.ndarray:
        try:
            return handle.copy()
        except MemoryError as exc:
            raise DeviceError(DeviceStage.READBACK, "out of host memory") from exc

    def free(self, handle: np.ndarray) -> None:
        # Host buffers are reclaimed by the garbage collector once the
        # handle is dropped.
        pass

    def launch(self, kernel, geometry, block_id, num_blocks, dist, path) -> None:
        if geometry.local_size[0] != geometry.local_size[1]:
            raise DeviceError(
                DeviceStage.LAUNCH, f"local size {geometry.local_size} is not square"
            )
        if self._num_threads is not None:
            import numba

            numba.set_num_threads(self._num_threads)
        try:
            kernel(block_id, num_blocks, dist, path)
        except (RuntimeError, ValueError, TypeError) as exc:
            raise DeviceError(DeviceStage.LAUNCH, str(exc)) from exc


# =============================================================================
# CUDA BACKEND
# =============================================================================

# Limits of every CUDA device of compute capability 3.0 or later, used for
# attributes a driver does not report (the numba CUDA simulator reports none).
CUDA_DEFAULT_LIMITS = {
    "MAX_BLOCK_DIM_X": 1024,
    "MAX_BLOCK_DIM_Y": 1024,
    "MAX_BLOCK_DIM_Z": 64,
    "MAX_THREADS_PER_BLOCK": 1024,
    "MAX_GRID_DIM_X": 2**31 - 1,
    "MAX_GRID_DIM_Y": 65535,
    "MAX_GRID_DIM_Z": 65535,
}

_CUDA_ERROR_NAMES = (
    ("numba.cuda.cudadrv.driver", "CudaAPIError"),
    ("numba.cuda.cudadrv.error", "CudaDriverError"),
    ("numba.cuda.cudadrv.error", "CudaSupportError"),
)


def _cuda_error_types() -> tuple[type[BaseException], ...]:
    """Driver exception classes present in the loaded ``numba.cuda`` target."""
    import importlib

    found = []
    for module_name, name in _CUDA_ERROR_NAMES:
        error_type = getattr(importlib.import_module(module_name), name, None)
        if error_type is not None:
            found.append(error_type)
    return tuple(found)


class CudaBackend(Backend):
    """Accelerator backend built on ``numba.cuda``.

    All transfers and launches go to one CUDA stream, so each launch
    observes the completed effects of the previous one. The process-wide
    CUDA context is managed by numba and stays open after :meth:`close`.
    """

    name = "cuda"

    def __init__(self) -> None:
        self._cuda = None
        self._stream = None
        self._errors: tuple[type[BaseException], ...] = ()

    def _fail(self, stage: DeviceStage, exc: BaseException) -> DeviceError:
        return DeviceError(stage, str(exc), code=getattr(exc, "code", None))

    def discover(self, config: EngineConfig) -> DeviceInfo:
        try:
            from numba import cuda

            self._errors = _cuda_error_types()
        except ImportError as exc:
            raise DeviceError(DeviceStage.DISCOVERY, f"numba.cuda unavailable: {exc}") from exc

        if not cuda.is_available():
            raise DeviceError(DeviceStage.DISCOVERY, "no CUDA-capable device found")
        try:
            cuda.select_device(config.device_id)
            device = cuda.current_context().device
            self._stream = cuda.stream()
        except self._errors as exc:
            raise self._fail(DeviceStage.DISCOVERY, exc) from exc
        self._cuda = cuda

        name = getattr(device, "name", "CUDA simulator")
        name = name.decode() if isinstance(name, bytes) else str(name)

        def limit(attribute: str) -> int:
            return int(getattr(device, attribute, CUDA_DEFAULT_LIMITS[attribute]))

        capabilities = DeviceCapabilities(
            max_dimensions=3,
            max_group_extent=(
                limit("MAX_BLOCK_DIM_X"),
                limit("MAX_BLOCK_DIM_Y"),
                limit("MAX_BLOCK_DIM_Z"),
            ),
            max_group_threads=limit("MAX_THREADS_PER_BLOCK"),
            max_grid_extent=(
                limit("MAX_GRID_DIM_X"),
                limit("MAX_GRID_DIM_Y"),
                limit("MAX_GRID_DIM_Z"),
            ),
        )
        return DeviceInfo(name=name, backend=self.name, capabilities=capabilities)

    def compile(self, config: EngineConfig) -> PhaseKernels:
        from pyapsp._cuda_kernels import build_cuda_phase_kernels

        if self._cuda is None:
            raise InvalidConfigError("CUDA kernels requested before device discovery")
        logger.debug("Compiling CUDA kernels for block_size=%d", config.block_size)
        try:
            kernels = build_cuda_phase_kernels(config.block_size, config.sentinel)
        except NumbaError as exc:
            raise DeviceError(DeviceStage.COMPILATION, str(exc)) from exc
        except self._errors as exc:
            raise self._fail(DeviceStage.COMPILATION, exc) from exc
        return PhaseKernels(*kernels, block_size=config.block_size)

    def allocate(self, shape, dtype):
        try:
            return self._cuda.device_array(shape, dtype=dtype, stream=self._stream)
        except self._errors as exc:
            raise self._fail(DeviceStage.ALLOCATION, exc) from exc

    def upload(self, handle, host) -> None:
        try:
            handle.copy_to_device(host, stream=self._stream)
        except self._errors as exc:
            raise self._fail(DeviceStage.UPLOAD, exc) from exc

    def download(self, handle) -> np.ndarray:
        try:
            host = handle.copy_to_host(stream=self._stream)
            self._stream.synchronize()
        except self._errors as exc:
            raise self._fail(DeviceStage.READBACK, exc) from exc
        return host

    def free(self, handle) -> None:
        # Simulator arrays are plain host memory with no device pointer
        pointer = getattr(handle, "gpu_data", None)
        try:
            if pointer is not None:
                pointer.free()
            deallocations = getattr(self._cuda.current_context(), "deallocations", None)
            if deallocations is not None:
                deallocations.clear()
        except self._errors as exc:
            raise self._fail(DeviceStage.RELEASE, exc) from exc

    def launch(self, kernel, geometry, block_id, num_blocks, dist, path) -> None:
        try:
            kernel[geometry.groups, geometry.local_size, self._stream](
                block_id, num_blocks, dist, path
            )
        except self._errors as exc:
            raise self._fail(DeviceStage.LAUNCH, exc) from exc

    def synchronize(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.synchronize()
        except self._errors as exc:
            raise self._fail(DeviceStage.LAUNCH, exc) from exc

    def close(self) -> None:
        """Drain and drop the stream. Safe to call twice."""
        stream, self._stream = self._stream, None
        self._cuda = None
        if stream is None:
            return
        try:
            stream.synchronize()
        except self._errors as exc:
            raise self._fail(DeviceStage.RELEASE, exc) from exc


BACKEND_TYPES: dict[str, type[Backend]] = {
    CpuBackend.name: CpuBackend,
    CudaBackend.name: CudaBackend,
}


def create_backend(name: str) -> Backend:
    """Instantiate the backend registered under ``name``."""
    try:
        return BACKEND_TYPES[name]()
    except KeyError:
        raise InvalidConfigError(
            f"Unknown backend {name!r}. Choose one of {', '.join(BACKEND_TYPES)}."
        ) from None

"""Device memory lifecycle for one APSP run.

Both matrices are allocated at padded size so every tile is full and the
kernels need no bounds checks. Padding rows and columns are unreachable
from every real vertex (sentinel distance, no predecessor) with a zero
self distance, so they never change a real-index result.

Lifecycle per run: allocate -> copy in once -> kernels -> copy out once
-> release. Buffers are scoped handles and are released on every exit
path, successful or not.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from typing import Any

import numpy as np

from pyapsp.core.exceptions import DeviceError, DeviceStage
from pyapsp.core.graph import GraphData
from pyapsp.core.types import (
    DIST_DTYPE,
    NO_PREDECESSOR,
    PATH_DTYPE,
    DistanceMatrix,
    PredecessorMatrix,
)
from pyapsp.engine.backends import Backend

logger = logging.getLogger(__name__)


def padded_size(num_vertices: int, block_size: int) -> int:
    """Round ``num_vertices`` up to the next multiple of ``block_size``."""
    return -(-num_vertices // block_size) * block_size


def pad_matrices(
    graph: GraphData,
    block_size: int,
    sentinel: float,
) -> tuple[DistanceMatrix, PredecessorMatrix]:
    """
    Copy a graph into host matrices padded to a whole number of tiles.

    Distances at or above the sentinel (including +inf) are clamped to the
    sentinel so the kernels only ever see one "unreachable" value.

    Returns:
        (dist, path) of shape (padded_size, padded_size)
    """
    n = graph.num_vertices
    size = padded_size(n, block_size)

    dist = np.full((size, size), sentinel, dtype=DIST_DTYPE)
    np.minimum(graph.dist, DIST_DTYPE(sentinel), out=dist[:n, :n])
    pad = np.arange(n, size)
    dist[pad, pad] = 0.0

    path = np.full((size, size), NO_PREDECESSOR, dtype=PATH_DTYPE)
    path[:n, :n] = graph.path
    return dist, path


class DeviceBuffer:
    """
    Scoped handle to one device-resident matrix.

    Allocated on construction; released by :meth:`release` or on leaving
    a ``with`` block. Releasing twice is a no-op.
    """

    def __init__(
        self,
        backend: Backend,
        shape: tuple[int, int],
        dtype: np.dtype,
        label: str,
    ) -> None:
        self.backend = backend
        self.shape = shape
        self.dtype = np.dtype(dtype)
        self.label = label
        self._handle: Any = backend.allocate(shape, self.dtype)
        logger.debug("Allocated %s buffer %s %s", label, shape, self.dtype)

    @property
    def released(self) -> bool:
        return self._handle is None

    @property
    def handle(self) -> Any:
        if self._handle is None:
            raise DeviceError(DeviceStage.LAUNCH, f"{self.label} buffer used after release")
        return self._handle

    @property
    def nbytes(self) -> int:
        return int(np.prod(self.shape)) * self.dtype.itemsize

    def upload(self, host: np.ndarray) -> None:
        if host.shape != self.shape or host.dtype != self.dtype:
            raise DeviceError(
                DeviceStage.UPLOAD,
                f"{self.label} host array {host.shape} {host.dtype} does not match "
                f"buffer {self.shape} {self.dtype}",
            )
        self.backend.upload(self.handle, host)

    def download(self) -> np.ndarray:
        return self.backend.download(self.handle)

    def release(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self.backend.free(handle)
        logger.debug("Released %s buffer", self.label)

    def __enter__(self) -> DeviceBuffer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.release()
            return
        try:
            self.release()
        except DeviceError as release_error:
            logger.warning("Ignoring %s while unwinding from %r", release_error, exc)


class MatrixBuffers:
    """
    Distance and predecessor buffers of one run.

    Entering the context allocates both buffers and performs the single
    copy-in. Leaving it releases whatever was allocated. A release failure
    while another error is propagating is logged and the original error
    is re-raised.

    Example:
        >>> with MatrixBuffers(backend, graph, block_size=16, sentinel=1e5) as buffers:
        ...     scheduler.run(buffers)
        ...     buffers.copy_out(graph)
    """

    def __init__(
        self,
        backend: Backend,
        graph: GraphData,
        block_size: int,
        sentinel: float,
    ) -> None:
        self.backend = backend
        self.num_vertices = graph.num_vertices
        self.block_size = block_size
        self.sentinel = sentinel
        self.size = padded_size(graph.num_vertices, block_size)
        self._graph = graph
        self._stack = ExitStack()
        self.dist: DeviceBuffer | None = None
        self.path: DeviceBuffer | None = None

    def __enter__(self) -> MatrixBuffers:
        shape = (self.size, self.size)
        with ExitStack() as stack:
            self.dist = stack.enter_context(
                DeviceBuffer(self.backend, shape, DIST_DTYPE, "dist")
            )
            self.path = stack.enter_context(
                DeviceBuffer(self.backend, shape, PATH_DTYPE, "path")
            )
            host_dist, host_path = pad_matrices(self._graph, self.block_size, self.sentinel)
            self.dist.upload(host_dist)
            self.path.upload(host_path)
            self._stack = stack.pop_all()
        self._graph = None
        logger.debug(
            "Copied %d x %d matrices to device (%d bytes)",
            self.size,
            self.size,
            self.dist.nbytes + self.path.nbytes,
        )
        return self

    def copy_out(self, graph: GraphData) -> None:
        """
        Copy results back into ``graph`` in place.

        Both buffers are read back before either host matrix is written,
        so a failed readback leaves the caller's matrices untouched.
        """
        n = self.num_vertices
        if graph.num_vertices != n:
            raise DeviceError(
                DeviceStage.READBACK,
                f"graph has {graph.num_vertices} vertices, buffers hold {n}",
            )
        dist = self.dist.download()
        path = self.path.download()
        graph.dist[...] = dist[:n, :n]
        graph.path[...] = path[:n, :n]

    def release(self) -> None:
        self._stack.close()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is None:
            self.release()
            return
        try:
            self.release()
        except DeviceError as release_error:
            logger.warning("Ignoring %s while unwinding from %r", release_error, exc)

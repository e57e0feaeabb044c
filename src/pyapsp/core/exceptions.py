"""Custom exceptions and warnings for PyAPSP.

Every failure of an APSP run is reported through this hierarchy. Each
exception carries a :class:`RunStatus` so callers (and the CLI) can tell
success apart from the stage at which a run aborted without parsing
messages.

Exception Hierarchy:
    APSPError (Exception)
    ├── ConfigurationError
    │   ├── TooSmallError
    │   ├── CapabilitiesExceededError
    │   └── InvalidConfigError
    ├── DeviceError
    ├── DataValidationError
    │   ├── DimensionError
    │   ├── ValueRangeError
    │   └── NaNInfError
    └── GraphIOError (also OSError)

Warning Classes:
    DataQualityWarning (UserWarning)
"""

from __future__ import annotations

from enum import Enum, IntEnum


# =============================================================================
# STATUS CODES
# =============================================================================


class RunStatus(IntEnum):
    """Outcome of an APSP run.

    The integer values double as process exit codes for the CLI.
    """

    SUCCESS = 0
    IO_FAILED = 1
    INVALID_INPUT = 2
    TOO_SMALL = 3
    CAPABILITIES_EXCEEDED = 4
    VERIFICATION_FAILED = 5
    DISCOVERY_FAILED = 10
    COMPILATION_FAILED = 11
    ALLOCATION_FAILED = 12
    UPLOAD_FAILED = 13
    LAUNCH_FAILED = 14
    READBACK_FAILED = 15
    RELEASE_FAILED = 16


class DeviceStage(str, Enum):
    """Point in the device lifecycle at which a driver call failed."""

    DISCOVERY = "discovery"
    COMPILATION = "compilation"
    ALLOCATION = "allocation"
    UPLOAD = "upload"
    LAUNCH = "launch"
    READBACK = "readback"
    RELEASE = "release"

    @property
    def status(self) -> RunStatus:
        return _STAGE_STATUS[self]


_STAGE_STATUS = {
    DeviceStage.DISCOVERY: RunStatus.DISCOVERY_FAILED,
    DeviceStage.COMPILATION: RunStatus.COMPILATION_FAILED,
    DeviceStage.ALLOCATION: RunStatus.ALLOCATION_FAILED,
    DeviceStage.UPLOAD: RunStatus.UPLOAD_FAILED,
    DeviceStage.LAUNCH: RunStatus.LAUNCH_FAILED,
    DeviceStage.READBACK: RunStatus.READBACK_FAILED,
    DeviceStage.RELEASE: RunStatus.RELEASE_FAILED,
}


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class APSPError(Exception):
    """Base exception for all PyAPSP errors.

    Example:
        >>> try:
        ...     calculate_apsp(graph)
        ... except APSPError as e:
        ...     print(f"APSP failed ({e.status.name}): {e}")
    """

    status: RunStatus = RunStatus.INVALID_INPUT


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================


class ConfigurationError(APSPError):
    """Raised when the tiling scheme cannot be applied to a graph or device.

    Configuration errors are detected before any device buffer is
    allocated, so they never leave resources behind.
    """

    status = RunStatus.INVALID_INPUT


class TooSmallError(ConfigurationError):
    """Raised when the graph has fewer than two tiles worth of vertices.

    The row/column phase needs at least one block besides the pivot, so
    ``num_vertices`` must be at least ``2 * block_size``.

    Example:
        >>> calculate_apsp(GraphData.empty(8), EngineConfig(block_size=16))
        TooSmallError: Graph has 8 vertices; blocked Floyd-Warshall with
        block_size=16 needs at least 32...
    """

    status = RunStatus.TOO_SMALL

    def __init__(self, num_vertices: int, block_size: int) -> None:
        self.num_vertices = num_vertices
        self.block_size = block_size
        super().__init__(
            f"Graph has {num_vertices} vertices; blocked Floyd-Warshall with "
            f"block_size={block_size} needs at least {2 * block_size}. "
            f"Use a smaller block_size."
        )


class CapabilitiesExceededError(ConfigurationError):
    """Raised when the device cannot host the requested launch geometry.

    Common causes:
        - Device exposes fewer than 2 work dimensions
        - Tile side larger than the per-dimension group extent
        - More tiles per dimension than the device grid allows
    """

    status = RunStatus.CAPABILITIES_EXCEEDED

    def __init__(self, message: str, limit: str | None = None) -> None:
        self.limit = limit
        super().__init__(message)


class InvalidConfigError(ConfigurationError):
    """Raised for malformed engine settings (block size, backend, sentinel)."""

    status = RunStatus.INVALID_INPUT


# =============================================================================
# DEVICE EXCEPTIONS
# =============================================================================


class DeviceError(APSPError):
    """Raised when a device driver call fails.

    Attributes:
        stage: DeviceStage at which the failure occurred
        code: Underlying driver error code, if the driver reported one

    Device errors are never retried; the run aborts and the caller's
    matrices are left as they were before the call.
    """

    def __init__(
        self,
        stage: DeviceStage,
        message: str,
        code: int | None = None,
    ) -> None:
        self.stage = DeviceStage(stage)
        self.code = code
        detail = f" (code={code})" if code is not None else ""
        super().__init__(f"Device {self.stage.value} failed: {message}{detail}")

    @property
    def status(self) -> RunStatus:  # type: ignore[override]
        return self.stage.status


# =============================================================================
# DATA VALIDATION EXCEPTIONS
# =============================================================================


class DataValidationError(APSPError):
    """Raised when input matrices fail validation checks."""

    status = RunStatus.INVALID_INPUT


class DimensionError(DataValidationError):
    """Raised when matrix shapes are not square or do not agree.

    Example:
        >>> GraphData(dist=np.zeros((4, 4)), path=np.zeros((4, 3)))
        DimensionError: path shape (4, 3) does not match dist shape (4, 4)
    """

    pass


class ValueRangeError(DataValidationError):
    """Raised when values are outside their allowed range.

    Common causes:
        - Negative edge weights
        - Non-zero self distance on the diagonal
        - Predecessor indices outside [-1, num_vertices)
    """

    pass


class NaNInfError(DataValidationError):
    """Raised when NaN values are found in the distance matrix.

    Positive infinity is accepted and treated as the sentinel distance.
    """

    pass


# =============================================================================
# IO EXCEPTIONS
# =============================================================================


class GraphIOError(APSPError, OSError):
    """Raised by the edge-list loader for missing or malformed input.

    Attributes:
        path: File the loader was reading, if any
        line: 1-based line number of the offending record, if known
    """

    status = RunStatus.IO_FAILED

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line: int | None = None,
    ) -> None:
        self.path = path
        self.line = line
        where = ""
        if path is not None:
            where = f"{path}:{line}: " if line is not None else f"{path}: "
        elif line is not None:
            where = f"line {line}: "
        super().__init__(f"{where}{message}")


# =============================================================================
# WARNINGS
# =============================================================================


class DataQualityWarning(UserWarning):
    """Warning for input issues that do not prevent computation.

    Emitted when:
        - An edge weight is at or above the sentinel distance (the edge
          is indistinguishable from "unreachable")
        - Self loops in an edge list are dropped

    Example:
        >>> import warnings
        >>> warnings.filterwarnings('error', category=DataQualityWarning)
    """

    pass

"""Core data structures for PyAPSP."""

from pyapsp.core.graph import GraphData
from pyapsp.core.result import APSPResult
from pyapsp.core.exceptions import (
    RunStatus,
    DeviceStage,
    APSPError,
    ConfigurationError,
    TooSmallError,
    CapabilitiesExceededError,
    InvalidConfigError,
    DeviceError,
    DataValidationError,
    DimensionError,
    ValueRangeError,
    NaNInfError,
    GraphIOError,
    DataQualityWarning,
)

__all__ = [
    "GraphData",
    "APSPResult",
    # Status
    "RunStatus",
    "DeviceStage",
    # Exceptions
    "APSPError",
    "ConfigurationError",
    "TooSmallError",
    "CapabilitiesExceededError",
    "InvalidConfigError",
    "DeviceError",
    "DataValidationError",
    "DimensionError",
    "ValueRangeError",
    "NaNInfError",
    "GraphIOError",
    # Warnings
    "DataQualityWarning",
]

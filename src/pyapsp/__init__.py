"""
PyAPSP: All-Pairs Shortest Paths with blocked Floyd-Warshall.

Tiled three-phase Floyd-Warshall over dense distance and predecessor
matrices, run on the numba CPU thread pool or a CUDA accelerator.
"""

from pyapsp.config import EngineConfig
from pyapsp.core.graph import GraphData
from pyapsp.core.result import APSPResult
from pyapsp.core.exceptions import (
    APSPError,
    CapabilitiesExceededError,
    DataQualityWarning,
    DeviceError,
    DeviceStage,
    GraphIOError,
    InvalidConfigError,
    RunStatus,
    TooSmallError,
)
from pyapsp.algorithms.floyd_warshall import calculate_apsp
from pyapsp.engine.context import DeviceContext
from pyapsp.graph.paths import reconstruct_path
from pyapsp.io.formatter import format_result
from pyapsp.io.loader import parse_graph, read_graph

__version__ = "0.1.0"

__all__ = [
    # Data structures
    "GraphData",
    "EngineConfig",
    "DeviceContext",
    # Result types
    "APSPResult",
    "RunStatus",
    # Core algorithm
    "calculate_apsp",
    "reconstruct_path",
    # Input / output
    "read_graph",
    "parse_graph",
    "format_result",
    # Errors
    "APSPError",
    "TooSmallError",
    "CapabilitiesExceededError",
    "InvalidConfigError",
    "DeviceError",
    "DeviceStage",
    "GraphIOError",
    "DataQualityWarning",
]

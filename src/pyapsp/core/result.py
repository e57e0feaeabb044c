"""Result dataclasses for APSP runs.

The shortest distances and predecessors themselves are written in place
into the caller's :class:`~pyapsp.core.graph.GraphData`; the result object
describes how the run was laid out and executed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pyapsp.core.exceptions import RunStatus
from pyapsp.core.mixins import ResultSummaryMixin


@dataclass(frozen=True)
class APSPResult:
    """
    Outcome of one blocked Floyd-Warshall run.

    Attributes:
        num_vertices: Real vertex count n
        padded_size: n rounded up to a multiple of block_size
        block_size: Tile side B compiled into the kernels
        num_blocks: Pivot iterations (padded_size / B)
        num_launches: Kernel launches submitted (3 per pivot iteration)
        backend: Substrate the kernels ran on ("cpu" or "cuda")
        device_name: Human-readable name of the device
        computation_time_ms: Wall time from copy-in to copy-out
        status: Always RunStatus.SUCCESS; failures raise instead
    """

    num_vertices: int
    padded_size: int
    block_size: int
    num_blocks: int
    num_launches: int
    backend: str
    device_name: str
    computation_time_ms: float
    status: RunStatus = RunStatus.SUCCESS

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def num_padding_vertices(self) -> int:
        """Sentinel rows/columns added to fill the last tile."""
        return self.padded_size - self.num_vertices

    def summary(self) -> str:
        """Return human-readable summary report."""
        m = ResultSummaryMixin
        lines = [m._format_header("ALL-PAIRS SHORTEST PATH REPORT")]
        lines.append(f"\nStatus: {self.status.name}")

        lines.append(m._format_section("Layout"))
        lines.append(m._format_metric("Vertices", self.num_vertices))
        lines.append(m._format_metric("Padded Size", self.padded_size))
        lines.append(m._format_metric("Tile", (self.block_size, self.block_size)))
        lines.append(m._format_metric("Pivot Iterations", self.num_blocks))
        lines.append(m._format_metric("Kernel Launches", self.num_launches))

        lines.append(m._format_section("Device"))
        lines.append(m._format_metric("Backend", self.backend))
        lines.append(m._format_metric("Device", self.device_name))

        lines.append(m._format_footer(self.computation_time_ms))
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Return dictionary representation for serialization."""
        return {
            "status": self.status.name,
            "num_vertices": self.num_vertices,
            "padded_size": self.padded_size,
            "block_size": self.block_size,
            "num_blocks": self.num_blocks,
            "num_launches": self.num_launches,
            "backend": self.backend,
            "device_name": self.device_name,
            "computation_time_ms": self.computation_time_ms,
        }

    def __repr__(self) -> str:
        return (
            f"APSPResult(n={self.num_vertices}, B={self.block_size}, "
            f"{self.backend}, {self.computation_time_ms:.2f}ms)"
        )

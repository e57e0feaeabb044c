"""Graph utilities for finished APSP results."""

from pyapsp.graph.paths import iter_predecessors, path_weight, reconstruct_path

__all__ = [
    "iter_predecessors",
    "path_weight",
    "reconstruct_path",
]

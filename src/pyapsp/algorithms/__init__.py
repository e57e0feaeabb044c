"""APSP algorithms."""

from pyapsp.algorithms.floyd_warshall import calculate_apsp

__all__ = [
    "calculate_apsp",
]

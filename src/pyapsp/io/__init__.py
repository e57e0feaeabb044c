"""Edge-list input and JSON output."""

from pyapsp.io.formatter import format_result, to_nested_lists
from pyapsp.io.loader import parse_graph, read_graph

__all__ = [
    "format_result",
    "to_nested_lists",
    "parse_graph",
    "read_graph",
]

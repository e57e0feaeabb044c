"""Formatting helpers shared by result and report summaries."""

from __future__ import annotations

from typing import Any


class ResultSummaryMixin:
    """Common formatting utilities for result summaries.

    Provides helper methods for building the plain-text reports returned
    by ``summary()`` on APSP results and verification reports.
    """

    @staticmethod
    def _format_header(title: str, width: int = 72) -> str:
        """Format a centered title between two rules."""
        border = "=" * width
        padding = (width - len(title)) // 2
        return f"{border}\n{' ' * padding}{title}\n{border}"

    @staticmethod
    def _format_metric(label: str, value: Any, width: int = 44) -> str:
        """Format a dotted label/value line.

        Args:
            label: Metric name
            value: Metric value (floats get 2 decimals, bools Yes/No)
            width: Total width used for dot alignment

        Returns:
            Formatted metric string
        """
        if isinstance(value, bool):
            formatted_value = "Yes" if value else "No"
        elif isinstance(value, float):
            formatted_value = f"{value:,.2f}"
        elif isinstance(value, tuple):
            formatted_value = " x ".join(str(v) for v in value)
        elif value is None:
            formatted_value = "N/A"
        else:
            formatted_value = str(value)

        dots = "." * max(1, width - len(label) - len(formatted_value) - 2)
        return f"  {label} {dots} {formatted_value}"

    @staticmethod
    def _format_section(title: str) -> str:
        """Format a section subheader."""
        return f"\n{title}:\n{'-' * len(title)}"

    @staticmethod
    def _format_list(items: list, max_items: int = 5, item_name: str = "item") -> str:
        """Format a numbered list, truncated after ``max_items`` entries."""
        if not items:
            return "  (none)"

        lines = [f"  {i + 1}. {item}" for i, item in enumerate(items[:max_items])]
        if len(items) > max_items:
            lines.append(f"  ... and {len(items) - max_items} more {item_name}(s)")
        return "\n".join(lines)

    @staticmethod
    def _format_footer(computation_time_ms: float, width: int = 72) -> str:
        """Format the report footer with wall-clock time."""
        border = "=" * width
        if computation_time_ms < 1000:
            time_str = f"{computation_time_ms:.2f} ms"
        else:
            time_str = f"{computation_time_ms / 1000:.2f} s"
        return f"\nComputation Time: {time_str}\n{border}"

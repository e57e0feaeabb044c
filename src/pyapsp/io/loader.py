"""Edge-list reader.

File format (whitespace separated, one record per line)::

    num_vertices num_edges
    src dst weight
    ...

Exactly ``num_edges`` edge records must follow the header. Blank lines and
lines starting with ``#`` are ignored.
"""

from __future__ import annotations

import logging
import math
import os
from typing import Iterable, Iterator

from pyapsp.core.exceptions import DataValidationError, GraphIOError
from pyapsp.core.graph import GraphData
from pyapsp.core.types import SENTINEL_DISTANCE, Edge

logger = logging.getLogger(__name__)


def _records(lines: Iterable[str]) -> Iterator[tuple[int, list[str]]]:
    for line_no, line in enumerate(lines, start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        yield line_no, stripped.split()


def _parse_int(token: str, what: str, source: str | None, line: int) -> int:
    try:
        return int(token)
    except ValueError:
        raise GraphIOError(f"{what} must be an integer, got {token!r}", source, line) from None


def parse_graph(
    lines: Iterable[str],
    sentinel: float = SENTINEL_DISTANCE,
    source: str | None = None,
) -> GraphData:
    """
    Parse an edge list into a GraphData.

    Args:
        lines: Text lines of the edge list
        sentinel: Distance used for unreachable pairs
        source: Name reported in error messages (usually the file path)

    Returns:
        GraphData holding the direct edges: dist[src][dst] = weight and
        path[src][dst] = src, with 0 / -1 on the diagonal and
        sentinel / -1 everywhere else

    Raises:
        GraphIOError: If the header or an edge record is malformed, a
            vertex is out of range, or the edge count does not match

    Example:
        >>> graph = parse_graph(["3 2", "0 1 4", "1 2 5.5"])
        >>> float(graph.dist[1, 2])
        5.5
    """
    records = _records(lines)
    try:
        line_no, header = next(records)
    except StopIteration:
        raise GraphIOError("empty edge list, expected 'num_vertices num_edges'", source) from None
    if len(header) != 2:
        raise GraphIOError(
            f"header must be 'num_vertices num_edges', got {' '.join(header)!r}",
            source,
            line_no,
        )
    num_vertices = _parse_int(header[0], "num_vertices", source, line_no)
    num_edges = _parse_int(header[1], "num_edges", source, line_no)
    if num_vertices < 0 or num_edges < 0:
        raise GraphIOError("vertex and edge counts must be non-negative", source, line_no)

    edges: list[Edge] = []
    for line_no, fields in records:
        if len(edges) == num_edges:
            raise GraphIOError(
                f"more edge records than the {num_edges} declared in the header",
                source,
                line_no,
            )
        if len(fields) != 3:
            raise GraphIOError(
                f"edge record must be 'src dst weight', got {' '.join(fields)!r}",
                source,
                line_no,
            )
        src = _parse_int(fields[0], "src", source, line_no)
        dst = _parse_int(fields[1], "dst", source, line_no)
        try:
            weight = float(fields[2])
        except ValueError:
            raise GraphIOError(
                f"weight must be a number, got {fields[2]!r}", source, line_no
            ) from None
        if math.isnan(weight) or weight < 0:
            raise GraphIOError(
                f"weight must be a non-negative number, got {fields[2]!r}", source, line_no
            )
        for v in (src, dst):
            if not 0 <= v < num_vertices:
                raise GraphIOError(
                    f"vertex {v} out of range for {num_vertices} vertices", source, line_no
                )
        edges.append((src, dst, weight))

    if len(edges) != num_edges:
        raise GraphIOError(
            f"header declares {num_edges} edges but {len(edges)} were found", source
        )

    try:
        graph = GraphData.from_edges(num_vertices, edges, sentinel=sentinel)
    except DataValidationError as exc:
        raise GraphIOError(str(exc), source) from exc
    logger.debug("Parsed %d vertices and %d edges from %s", num_vertices, num_edges, source)
    return graph


def read_graph(
    path: str | os.PathLike[str],
    sentinel: float = SENTINEL_DISTANCE,
) -> GraphData:
    """
    Read an edge-list file.

    Raises:
        GraphIOError: If the file cannot be opened or is malformed
    """
    source = os.fspath(path)
    try:
        with open(source, encoding="utf-8") as f:
            return parse_graph(f, sentinel=sentinel, source=source)
    except GraphIOError:
        raise
    except OSError as exc:
        raise GraphIOError(f"cannot read edge list: {exc.strerror or exc}", source) from exc
    except UnicodeDecodeError as exc:
        raise GraphIOError(f"edge list is not valid UTF-8 text: {exc.reason}", source) from exc

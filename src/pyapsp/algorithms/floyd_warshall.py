"""Blocked Floyd-Warshall all-pairs shortest paths."""

from __future__ import annotations

from pyapsp.config import EngineConfig
from pyapsp.core.graph import GraphData
from pyapsp.core.result import APSPResult
from pyapsp.engine.context import DeviceContext, resolve_context
from pyapsp.engine.scheduler import LaunchCallback, plan_schedule


def calculate_apsp(
    graph: GraphData,
    config: EngineConfig | None = None,
    context: DeviceContext | None = None,
    on_launch: LaunchCallback | None = None,
) -> APSPResult:
    """
    Compute all-pairs shortest paths with blocked Floyd-Warshall, in place.

    The n x n distance and predecessor matrices of ``graph`` are padded to
    a whole number of B x B tiles, copied to the device once, relaxed by
    three kernel launches per pivot block and copied back once.

    For each pivot block k:
    1. Dependent phase: relax the pivot tile B(k, k) through its own
       vertices, with a barrier after each intermediate vertex.

    2. Partially dependent phase: relax every tile of block row k and
       block column k through the finalized pivot tile.

    3. Independent phase: relax every other tile through the finalized
       pivot row and column tiles.

    On success dist[i][j] is the shortest distance from i to j (or the
    sentinel when j is unreachable) and path[i][j] is the predecessor of
    j on one such path (-1 on the diagonal and for unreachable pairs).
    Ties keep the earlier-found path.

    Args:
        graph: Graph store, overwritten with the results on success and
            left untouched on failure
        config: Engine settings. Ignored when ``context`` is given, unless
            it disagrees with the context's own config
        context: Open device context to reuse across calls. When omitted a
            context is acquired for this call and released afterwards
        on_launch: Optional callback invoked after each kernel submission
            with (pivot block, phase)

    Returns:
        APSPResult describing the layout, device and timing of the run

    Raises:
        TooSmallError: If the graph has fewer than 2 * block_size vertices
        CapabilitiesExceededError: If the device cannot host the launches
        InvalidConfigError: If ``config`` disagrees with ``context.config``
        DeviceError: If any driver call fails; carries the failing stage

    Example:
        >>> from pyapsp import GraphData, EngineConfig, calculate_apsp
        >>> edges = [(0, 1, 1.0), (1, 2, 1.0), (2, 3, 1.0)]
        >>> graph = GraphData.from_edges(4, edges)
        >>> result = calculate_apsp(graph, EngineConfig(block_size=2))
        >>> float(graph.dist[0, 3]), int(graph.path[0, 3])
        (3.0, 2)
    """
    context = resolve_context(config, context)
    if context is not None:
        return context.run(graph, on_launch)

    if config is None:
        config = EngineConfig()
    # Fail on sizing before any device is touched
    plan_schedule(graph.num_vertices, config.block_size)

    with DeviceContext(config) as owned:
        return owned.run(graph, on_launch)

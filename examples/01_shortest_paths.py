"""Example: all-pairs shortest paths on a small road network.

This example shows how to:
- Build a graph from an edge list and solve it in place
- Reconstruct routes from the predecessor matrix
- Reuse one device context for many graphs
- Check a result against scipy
"""

from pyapsp import DeviceContext, EngineConfig, GraphData, calculate_apsp, format_result
from pyapsp.graph import path_weight, reconstruct_path
from pyapsp.verify import verify_result

# =============================================================================
# Example 1: One-off run
# =============================================================================

print("=" * 60)
print("Example 1: Eight towns, one-way roads")
print("=" * 60)

towns = ["Ash", "Birch", "Cedar", "Dale", "Elm", "Fir", "Glen", "Holt"]
roads = [
    (0, 1, 4.0),   # Ash -> Birch
    (0, 2, 9.0),   # Ash -> Cedar (long way round)
    (1, 2, 3.0),   # Birch -> Cedar
    (2, 3, 2.0),
    (3, 4, 6.0),
    (1, 4, 12.0),
    (4, 5, 1.0),
    (5, 6, 2.5),
    (6, 7, 1.5),
    (7, 0, 8.0),   # Holt back to Ash closes the loop
]

graph = GraphData.from_edges(len(towns), roads)
original = graph.copy()

# 8 vertices need block_size <= 4
result = calculate_apsp(graph, EngineConfig(block_size=4))
print(result.summary())

route = reconstruct_path(graph.path, 0, 7)
print(f"\nAsh -> Holt: {' -> '.join(towns[v] for v in route)}")
print(f"  Distance: {graph.dist[0, 7]:.1f} (edge sum {path_weight(original, route):.1f})")
print()

# =============================================================================
# Example 2: Reusing a context
# =============================================================================

print("=" * 60)
print("Example 2: Many graphs, one compiled context")
print("=" * 60)

with DeviceContext(EngineConfig(block_size=4)) as context:
    for closed_road in range(3):
        detour = GraphData.from_edges(
            len(towns), [r for i, r in enumerate(roads) if i != closed_road]
        )
        calculate_apsp(detour, context=context)
        print(f"  Road {closed_road} closed: Ash -> Holt = {detour.dist[0, 7]:.1f}")
print()

# =============================================================================
# Example 3: Verification and JSON output
# =============================================================================

print("=" * 60)
print("Example 3: Verify and export")
print("=" * 60)

report = verify_result(original, graph)
print(f"  Valid: {report.is_valid}")
print(format_result(graph))

#!/usr/bin/env python3
"""
Scaling Benchmark Suite for blocked Floyd-Warshall

Times calculate_apsp over graph size, tile side and backend.

Usage:
    python benchmarks/run_scaling.py                 # Full benchmark
    python benchmarks/run_scaling.py --quick         # Quick test (256 vertices max)
    python benchmarks/run_scaling.py --backend cuda  # Single backend
"""

import argparse
import sys
import time
import tracemalloc
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from benchmarks.config import (
    BACKENDS,
    BLOCK_SIZES,
    DENSITIES,
    NUM_TIMED_RUNS,
    NUM_WARMUP_RUNS,
    OUTPUT_DIR,
    QUICK_SCALE_LEVELS,
    SCALE_LEVELS,
    TRACK_MEMORY,
)
from benchmarks.generators import generate_benchmark_graph

from pyapsp import APSPError, DeviceContext, EngineConfig, calculate_apsp
from pyapsp.core.types import DEFAULT_BLOCK_SIZE


@dataclass
class BenchmarkResult:
    """Result for a single benchmark run."""

    backend: str
    n_vertices: int
    block_size: int
    density: str
    mean_time_ms: float
    std_time_ms: float
    min_time_ms: float
    max_time_ms: float
    peak_memory_mb: float
    relaxations_per_sec: float
    success: bool
    error_message: str = ""


@dataclass
class BenchmarkSuite:
    """Collection of benchmark results."""

    results: list[BenchmarkResult] = field(default_factory=list)
    total_time_seconds: float = 0.0

    def add(self, result: BenchmarkResult) -> None:
        self.results.append(result)

    def to_csv(self, path: Path) -> None:
        """Export results to CSV."""
        import csv

        with open(path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                [
                    "backend",
                    "n_vertices",
                    "block_size",
                    "density",
                    "mean_time_ms",
                    "std_time_ms",
                    "min_time_ms",
                    "max_time_ms",
                    "peak_memory_mb",
                    "relaxations_per_sec",
                    "success",
                    "error_message",
                ]
            )
            for r in self.results:
                writer.writerow(
                    [
                        r.backend,
                        r.n_vertices,
                        r.block_size,
                        r.density,
                        f"{r.mean_time_ms:.2f}",
                        f"{r.std_time_ms:.2f}",
                        f"{r.min_time_ms:.2f}",
                        f"{r.max_time_ms:.2f}",
                        f"{r.peak_memory_mb:.2f}",
                        f"{r.relaxations_per_sec:.3e}",
                        r.success,
                        r.error_message,
                    ]
                )


def run_single_benchmark(
    backend: str,
    n_vertices: int,
    block_size: int,
    density: str = "medium",
    seed: int = 42,
) -> BenchmarkResult:
    """Run benchmark for a single configuration."""
    graph = generate_benchmark_graph(n_vertices, DENSITIES[density], seed=seed)
    config = EngineConfig(block_size=block_size, backend=backend)

    times_ms: list[float] = []
    peak_memory_mb = 0.0

    try:
        # Kernels compile once per context; only the runs are timed
        with DeviceContext(config) as context:
            for _ in range(NUM_WARMUP_RUNS):
                calculate_apsp(graph.copy(), context=context)

            for _ in range(NUM_TIMED_RUNS):
                work = graph.copy()
                if TRACK_MEMORY:
                    tracemalloc.start()

                start = time.perf_counter()
                calculate_apsp(work, context=context)
                elapsed_ms = (time.perf_counter() - start) * 1000

                if TRACK_MEMORY:
                    current, peak = tracemalloc.get_traced_memory()
                    tracemalloc.stop()
                    peak_memory_mb = max(peak_memory_mb, peak / 1024 / 1024)

                times_ms.append(elapsed_ms)

        times = np.array(times_ms)
        throughput = float(n_vertices) ** 3 * 1000 / np.mean(times)

        return BenchmarkResult(
            backend=backend,
            n_vertices=n_vertices,
            block_size=block_size,
            density=density,
            mean_time_ms=float(np.mean(times)),
            std_time_ms=float(np.std(times)),
            min_time_ms=float(np.min(times)),
            max_time_ms=float(np.max(times)),
            peak_memory_mb=peak_memory_mb,
            relaxations_per_sec=throughput,
            success=True,
        )

    except APSPError as e:
        return BenchmarkResult(
            backend=backend,
            n_vertices=n_vertices,
            block_size=block_size,
            density=density,
            mean_time_ms=-1,
            std_time_ms=-1,
            min_time_ms=-1,
            max_time_ms=-1,
            peak_memory_mb=-1,
            relaxations_per_sec=-1,
            success=False,
            error_message=f"{e.status.name}: {e}",
        )


def run_full_benchmark(
    backends: list[str] | None = None,
    scale_levels: list[int] | None = None,
    block_sizes: list[int] | None = None,
    densities: list[str] | None = None,
    quick_mode: bool = False,
) -> BenchmarkSuite:
    """Run the full benchmark suite."""
    backends = backends or BACKENDS
    scale_levels = scale_levels or (QUICK_SCALE_LEVELS if quick_mode else SCALE_LEVELS)
    block_sizes = block_sizes or [DEFAULT_BLOCK_SIZE]
    densities = densities or ["medium"]

    suite = BenchmarkSuite()
    total_configs = len(backends) * len(scale_levels) * len(block_sizes) * len(densities)

    print_banner("PYAPSP SCALING BENCHMARK SUITE")
    print(f"  Backends: {backends}")
    print(f"  Scale levels (n): {scale_levels}")
    print(f"  Block sizes (B): {block_sizes}")
    print(f"  Densities: {densities}")
    print(f"  Total configurations: {total_configs}")

    overall_start = time.perf_counter()
    config_idx = 0

    for backend in backends:
        print_banner(f"Benchmarking: {backend.upper()}", char="-")

        for n in scale_levels:
            for B in block_sizes:
                for density in densities:
                    config_idx += 1
                    print(
                        f"  [{config_idx}/{total_configs}] n={n}, B={B}, density={density}...",
                        end=" ",
                        flush=True,
                    )

                    result = run_single_benchmark(backend, n, B, density)
                    suite.add(result)

                    if result.success:
                        print(f"{result.mean_time_ms:.1f}ms (+-{result.std_time_ms:.1f})")
                    else:
                        print(f"FAILED: {result.error_message}")

    suite.total_time_seconds = time.perf_counter() - overall_start

    print_banner("BENCHMARK COMPLETE")
    print(f"  Total time: {suite.total_time_seconds:.1f}s")
    print(f"  Results: {len(suite.results)}")

    return suite


def print_banner(text: str, char: str = "=", width: int = 70) -> None:
    """Print a banner line."""
    print()
    print(char * width)
    print(f" {text}")
    print(char * width)


def print_summary_table(suite: BenchmarkSuite) -> None:
    """Print a summary table of results."""
    print_banner("SUMMARY TABLE")

    rows = sorted(set((r.backend, r.block_size) for r in suite.results))
    scales = sorted(set(r.n_vertices for r in suite.results))

    header = "Backend/B".ljust(15)
    for n in scales:
        header += f"n={n}".rjust(12)
    print(header)
    print("-" * len(header))

    for backend, B in rows:
        row = f"{backend}/{B}".ljust(15)
        for n in scales:
            matching = [
                r
                for r in suite.results
                if r.backend == backend and r.block_size == B and r.n_vertices == n
            ]
            if matching and matching[0].success:
                time_ms = matching[0].mean_time_ms
                if time_ms >= 1000:
                    row += f"{time_ms/1000:.1f}s".rjust(12)
                else:
                    row += f"{time_ms:.0f}ms".rjust(12)
            else:
                row += "FAIL".rjust(12)
        print(row)


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="PyAPSP Scaling Benchmarks")
    parser.add_argument("--quick", action="store_true", help="Quick mode (small scale)")
    parser.add_argument("--backend", choices=BACKENDS, help="Single backend to benchmark")
    parser.add_argument(
        "--block-sizes", type=int, nargs="+", choices=BLOCK_SIZES, help="Tile sides to compare"
    )
    parser.add_argument("--density", choices=list(DENSITIES), help="Edge density")
    parser.add_argument(
        "--output", type=str, default=str(OUTPUT_DIR / "scaling_results.csv")
    )
    args = parser.parse_args()

    OUTPUT_DIR.mkdir(exist_ok=True)

    suite = run_full_benchmark(
        backends=[args.backend] if args.backend else None,
        block_sizes=args.block_sizes,
        densities=[args.density] if args.density else None,
        quick_mode=args.quick,
    )

    print_summary_table(suite)

    output_path = Path(args.output)
    suite.to_csv(output_path)
    print(f"\nResults saved to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

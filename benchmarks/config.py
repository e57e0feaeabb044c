"""Benchmark configuration constants."""

from pathlib import Path

# Paths
BENCHMARKS_DIR = Path(__file__).parent
OUTPUT_DIR = BENCHMARKS_DIR / "output"

# Scale levels (vertices n)
SCALE_LEVELS = [64, 128, 256, 512, 1024, 2048, 4096]

# Quick mode scale levels
QUICK_SCALE_LEVELS = [64, 128, 256]

# Tile sides compiled into the kernels
BLOCK_SIZES = [8, 16, 32]

# Edge densities for benchmarking
DENSITIES = {
    "sparse": 0.01,
    "medium": 0.1,
    "dense": 0.5,
}

# Backends to benchmark
BACKENDS = ["cpu", "cuda"]

# Benchmark parameters
NUM_WARMUP_RUNS = 1
NUM_TIMED_RUNS = 3

# Memory tracking
TRACK_MEMORY = False

"""Numba JIT-compiled kernels for the CPU backend.

The three blocked Floyd-Warshall phases are generated per tile size by
:func:`build_phase_kernels`, so the tile side is a compile-time constant
inside the kernels exactly as it is in the host scheduling math. Each
phase is eagerly compiled against :data:`KERNEL_SIGNATURE`; compilation
errors therefore surface when a device context is acquired, never in the
middle of a run.

Tiles map onto the numba thread pool through ``prange``. A single worker
sweeps one tile through every intermediate vertex of the pivot block in
increasing order, which gives the same guarantee as a barrier after each
intermediate vertex on an accelerator.

The module also holds serial helpers used for verification.
"""

from __future__ import annotations

import numpy as np
from numba import njit, prange

# kernel(block_id, num_blocks, dist, path)
KERNEL_SIGNATURE = "void(int64, int64, float32[:, ::1], int32[:, ::1])"


# =============================================================================
# RELAXATION
# =============================================================================


@njit(cache=True)
def relax_cell(dist, path, i, j, l, sentinel):
    """
    Relax cell (i, j) through intermediate vertex l.

    Operands at or above the sentinel are skipped instead of added, so two
    "unreachable" halves never combine into a finite-looking distance.
    """
    d_il = dist[i, l]
    if d_il >= sentinel:
        return
    d_lj = dist[l, j]
    if d_lj >= sentinel:
        return
    candidate = d_il + d_lj
    if candidate < dist[i, j]:
        dist[i, j] = candidate
        path[i, j] = path[l, j]


# =============================================================================
# PHASE KERNELS
# =============================================================================


def build_phase_kernels(block_size: int, sentinel: float):
    """
    Compile the dependent, partially dependent and independent phases.

    Args:
        block_size: Tile side B, frozen into the generated code
        sentinel: Unreachable distance, frozen into the generated code

    Returns:
        Tuple of three compiled kernels taking
        (block_id, num_blocks, dist, path)

    Raises:
        numba.core.errors.NumbaError: If compilation fails
    """
    B = int(block_size)
    S = float(sentinel)

    def dependent_phase(block_id, num_blocks, dist, path):
        # Pivot block only; reads and writes stay inside B(k, k).
        base = block_id * B
        for l in range(base, base + B):
            for i in range(base, base + B):
                for j in range(base, base + B):
                    relax_cell(dist, path, i, j, l, S)

    def partially_dependent_phase(block_id, num_blocks, dist, path):
        # Group grid is num_blocks x 2: half 0 is the pivot row, half 1 the
        # pivot column. The group sitting on the pivot block is idle.
        base = block_id * B
        for g in prange(2 * num_blocks):
            half = g // num_blocks
            b = g - half * num_blocks
            if b != block_id:
                if half == 0:
                    row0 = base
                    col0 = b * B
                else:
                    row0 = b * B
                    col0 = base
                for l in range(base, base + B):
                    for i in range(row0, row0 + B):
                        for j in range(col0, col0 + B):
                            relax_cell(dist, path, i, j, l, S)

    def independent_phase(block_id, num_blocks, dist, path):
        # Pivot row and column are final here, so each cell takes the best
        # candidate over the whole pivot range in one pass.
        base = block_id * B
        for g in prange(num_blocks * num_blocks):
            bi = g // num_blocks
            bj = g - bi * num_blocks
            if bi != block_id and bj != block_id:
                for i in range(bi * B, bi * B + B):
                    for j in range(bj * B, bj * B + B):
                        best = dist[i, j]
                        pred = path[i, j]
                        for l in range(base, base + B):
                            d_il = dist[i, l]
                            d_lj = dist[l, j]
                            if d_il < S and d_lj < S:
                                candidate = d_il + d_lj
                                if candidate < best:
                                    best = candidate
                                    pred = path[l, j]
                        dist[i, j] = best
                        path[i, j] = pred

    return (
        njit(KERNEL_SIGNATURE)(dependent_phase),
        njit(KERNEL_SIGNATURE, parallel=True)(partially_dependent_phase),
        njit(KERNEL_SIGNATURE, parallel=True)(independent_phase),
    )


# =============================================================================
# SERIAL REFERENCE AND CHECKS
# =============================================================================


@njit(cache=True)
def floyd_warshall_serial(dist, path, sentinel):
    """
    Textbook Floyd-Warshall with predecessors, in place.

    Uses the same relaxation rule and sentinel handling as the blocked
    kernels. O(n^3), single threaded; meant as a reference.
    """
    n = dist.shape[0]
    for k in range(n):
        for i in range(n):
            if dist[i, k] >= sentinel:
                continue
            for j in range(n):
                relax_cell(dist, path, i, j, k, sentinel)


@njit(cache=True, parallel=True)
def count_triangle_violations(dist, sentinel, tolerance):
    """
    Count pairs (i, j) for which some k gives dist[i,k] + dist[k,j] < dist[i,j].

    Returns:
        Number of violating (i, j) pairs
    """
    n = dist.shape[0]
    bad = np.zeros(n, dtype=np.int64)
    for i in prange(n):
        for j in range(n):
            d_ij = dist[i, j]
            for k in range(n):
                d_ik = dist[i, k]
                d_kj = dist[k, j]
                if d_ik < sentinel and d_kj < sentinel:
                    if d_ik + d_kj < d_ij - tolerance * max(1.0, d_ij):
                        bad[i] += 1
                        break
    return bad.sum()


@njit(cache=True)
def check_predecessor_chains(dist, path, edge_dist, sentinel, tolerance):
    """
    Follow every predecessor chain back to its source.

    For each reachable pair (i, j) the chain j <- path[i, j] <- ... must
    reach i within n steps using only direct input edges, and the summed
    edge weights must match dist[i, j]. Unreachable pairs must have no
    predecessor.

    Args:
        dist: Final distance matrix
        path: Final predecessor matrix
        edge_dist: Input distance matrix holding the direct edge weights
        sentinel: Unreachable distance
        tolerance: Relative tolerance for the weight comparison

    Returns:
        (num_invalid, first_i, first_j); first_* are -1 when all are valid
    """
    n = dist.shape[0]
    num_invalid = 0
    first_i = -1
    first_j = -1
    for i in range(n):
        for j in range(n):
            if i == j:
                ok = path[i, j] == -1
            elif dist[i, j] >= sentinel:
                ok = path[i, j] == -1
            else:
                ok = True
                total = 0.0
                cur = j
                steps = 0
                while cur != i:
                    p = path[i, cur]
                    if p < 0 or steps >= n or edge_dist[p, cur] >= sentinel:
                        ok = False
                        break
                    total += edge_dist[p, cur]
                    cur = p
                    steps += 1
                if ok:
                    expected = dist[i, j]
                    ok = abs(total - expected) <= tolerance * max(1.0, abs(expected))
            if not ok:
                if num_invalid == 0:
                    first_i = i
                    first_j = j
                num_invalid += 1
    return num_invalid, first_i, first_j

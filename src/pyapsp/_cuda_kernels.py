"""Numba CUDA kernels for the accelerator backend.

One thread per output cell, one B x B thread block per tile. Tiles are
staged in shared memory and every intermediate vertex of the pivot block
is followed by ``cuda.syncthreads()`` in the dependent and partially
dependent phases. The independent phase only reads finalized pivot
row/column tiles and needs no barrier inside its sweep.

Grid layout (x = tile column, y = tile row):
    dependent            1 x 1
    partially dependent  num_blocks x 2  (y = 0 pivot row, y = 1 pivot column)
    independent          num_blocks x num_blocks

Kernels read ``cuda`` as a module global, so numba's CUDA simulator
(``NUMBA_ENABLE_CUDASIM=1``) can run them on the host.
"""

from __future__ import annotations

from numba import cuda, float32, int32

from pyapsp._kernels import KERNEL_SIGNATURE


def build_cuda_phase_kernels(block_size: int, sentinel: float):
    """
    Compile the three phase kernels for the current CUDA device.

    Args:
        block_size: Tile side B; also the shared-memory tile shape
        sentinel: Unreachable distance

    Returns:
        Tuple of (dependent, partially_dependent, independent) kernels
    """
    B = int(block_size)
    S = float(sentinel)

    @cuda.jit(KERNEL_SIGNATURE)
    def dependent_phase(block_id, num_blocks, dist, path):
        ty = cuda.threadIdx.y
        tx = cuda.threadIdx.x
        base = block_id * B
        i = base + ty
        j = base + tx

        tile_d = cuda.shared.array(shape=(B, B), dtype=float32)
        tile_p = cuda.shared.array(shape=(B, B), dtype=int32)
        tile_d[ty, tx] = dist[i, j]
        tile_p[ty, tx] = path[i, j]
        cuda.syncthreads()

        for l in range(B):
            d_il = tile_d[ty, l]
            d_lj = tile_d[l, tx]
            if d_il < S and d_lj < S:
                candidate = d_il + d_lj
                if candidate < tile_d[ty, tx]:
                    tile_d[ty, tx] = candidate
                    tile_p[ty, tx] = tile_p[l, tx]
            cuda.syncthreads()

        dist[i, j] = tile_d[ty, tx]
        path[i, j] = tile_p[ty, tx]

    @cuda.jit(KERNEL_SIGNATURE)
    def partially_dependent_phase(block_id, num_blocks, dist, path):
        bx = cuda.blockIdx.x
        half = cuda.blockIdx.y
        if bx == block_id:
            return

        ty = cuda.threadIdx.y
        tx = cuda.threadIdx.x
        base = block_id * B
        if half == 0:
            i = base + ty
            j = bx * B + tx
        else:
            i = bx * B + ty
            j = base + tx

        pivot_d = cuda.shared.array(shape=(B, B), dtype=float32)
        pivot_p = cuda.shared.array(shape=(B, B), dtype=int32)
        tile_d = cuda.shared.array(shape=(B, B), dtype=float32)
        tile_p = cuda.shared.array(shape=(B, B), dtype=int32)
        pivot_d[ty, tx] = dist[base + ty, base + tx]
        pivot_p[ty, tx] = path[base + ty, base + tx]
        tile_d[ty, tx] = dist[i, j]
        tile_p[ty, tx] = path[i, j]
        cuda.syncthreads()

        for l in range(B):
            if half == 0:
                d_il = pivot_d[ty, l]
                d_lj = tile_d[l, tx]
                p_lj = tile_p[l, tx]
            else:
                d_il = tile_d[ty, l]
                d_lj = pivot_d[l, tx]
                p_lj = pivot_p[l, tx]
            if d_il < S and d_lj < S:
                candidate = d_il + d_lj
                if candidate < tile_d[ty, tx]:
                    tile_d[ty, tx] = candidate
                    tile_p[ty, tx] = p_lj
            cuda.syncthreads()

        dist[i, j] = tile_d[ty, tx]
        path[i, j] = tile_p[ty, tx]

    @cuda.jit(KERNEL_SIGNATURE)
    def independent_phase(block_id, num_blocks, dist, path):
        bx = cuda.blockIdx.x
        by = cuda.blockIdx.y
        if bx == block_id or by == block_id:
            return

        ty = cuda.threadIdx.y
        tx = cuda.threadIdx.x
        base = block_id * B
        i = by * B + ty
        j = bx * B + tx

        col_d = cuda.shared.array(shape=(B, B), dtype=float32)
        row_d = cuda.shared.array(shape=(B, B), dtype=float32)
        row_p = cuda.shared.array(shape=(B, B), dtype=int32)
        col_d[ty, tx] = dist[i, base + tx]
        row_d[ty, tx] = dist[base + ty, j]
        row_p[ty, tx] = path[base + ty, j]
        cuda.syncthreads()

        best = dist[i, j]
        pred = path[i, j]
        for l in range(B):
            d_il = col_d[ty, l]
            d_lj = row_d[l, tx]
            if d_il < S and d_lj < S:
                candidate = d_il + d_lj
                if candidate < best:
                    best = candidate
                    pred = row_p[l, tx]

        dist[i, j] = best
        path[i, j] = pred

    return dependent_phase, partially_dependent_phase, independent_phase

"""Engine configuration for PyAPSP.

A single :class:`EngineConfig` is threaded through host-side sizing and
kernel generation, so the tile side used to pad and schedule the matrices
is always the one baked into the compiled kernels.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, replace
from typing import Literal, Mapping

from pyapsp.core.exceptions import InvalidConfigError
from pyapsp.core.types import DEFAULT_BLOCK_SIZE, SENTINEL_DISTANCE

BACKENDS = ("cpu", "cuda")

# Environment overrides read by EngineConfig.from_env()
ENV_PREFIX = "PYAPSP_"
ENV_BLOCK_SIZE = ENV_PREFIX + "BLOCK_SIZE"
ENV_BACKEND = ENV_PREFIX + "BACKEND"
ENV_SENTINEL = ENV_PREFIX + "SENTINEL"
ENV_NUM_THREADS = ENV_PREFIX + "NUM_THREADS"
ENV_DEVICE_ID = ENV_PREFIX + "DEVICE_ID"


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings for one blocked Floyd-Warshall engine.

    Attributes:
        block_size: Tile side B. Graphs need at least 2*B vertices.
        backend: Parallel substrate, "cpu" (numba thread pool) or "cuda".
        sentinel: Finite distance meaning "unreachable". Edge weights at
            or above it are treated as missing edges.
        num_threads: Worker threads for the cpu backend (None keeps the
            numba default).
        device_id: Accelerator ordinal for the cuda backend.

    Example:
        >>> config = EngineConfig(block_size=8)
        >>> config.with_overrides(backend="cuda").backend
        'cuda'
    """

    block_size: int = DEFAULT_BLOCK_SIZE
    backend: Literal["cpu", "cuda"] = "cpu"
    sentinel: float = SENTINEL_DISTANCE
    num_threads: int | None = None
    device_id: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int):
            raise InvalidConfigError(
                f"block_size must be an integer, got {self.block_size!r}"
            )
        if self.block_size < 1:
            raise InvalidConfigError(
                f"block_size must be positive, got {self.block_size}"
            )
        if self.backend not in BACKENDS:
            raise InvalidConfigError(
                f"Unknown backend {self.backend!r}. Choose one of {', '.join(BACKENDS)}."
            )
        sentinel = float(self.sentinel)
        if not math.isfinite(sentinel) or sentinel <= 0:
            raise InvalidConfigError(
                f"sentinel must be a finite positive distance, got {self.sentinel!r}"
            )
        object.__setattr__(self, "sentinel", sentinel)
        if self.num_threads is not None and self.num_threads < 1:
            raise InvalidConfigError(
                f"num_threads must be at least 1, got {self.num_threads}"
            )
        if self.device_id < 0:
            raise InvalidConfigError(f"device_id must be >= 0, got {self.device_id}")

    @property
    def min_vertices(self) -> int:
        """Smallest graph the tiling scheme accepts."""
        return 2 * self.block_size

    def with_overrides(self, **changes) -> EngineConfig:
        """Return a copy with the given fields replaced (None values ignored)."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides,
    ) -> EngineConfig:
        """
        Build a config from ``PYAPSP_*`` environment variables.

        Explicit keyword overrides win over the environment; anything not
        set falls back to the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if ENV_BLOCK_SIZE in env:
            values["block_size"] = _parse_int(env, ENV_BLOCK_SIZE)
        if ENV_BACKEND in env:
            values["backend"] = env[ENV_BACKEND].strip().lower()
        if ENV_SENTINEL in env:
            try:
                values["sentinel"] = float(env[ENV_SENTINEL])
            except ValueError:
                raise InvalidConfigError(
                    f"{ENV_SENTINEL} must be a number, got {env[ENV_SENTINEL]!r}"
                ) from None
        if ENV_NUM_THREADS in env:
            values["num_threads"] = _parse_int(env, ENV_NUM_THREADS)
        if ENV_DEVICE_ID in env:
            values["device_id"] = _parse_int(env, ENV_DEVICE_ID)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _parse_int(env: Mapping[str, str], key: str) -> int:
    try:
        return int(env[key])
    except ValueError:
        raise InvalidConfigError(f"{key} must be an integer, got {env[key]!r}") from None

"""Type aliases and numeric constants for PyAPSP."""

from typing import TypeAlias
import numpy as np
from numpy.typing import NDArray

# Matrix types
DistanceMatrix: TypeAlias = NDArray[np.float32]
PredecessorMatrix: TypeAlias = NDArray[np.int32]

# Element types of the device-resident matrices
DIST_DTYPE = np.float32
PATH_DTYPE = np.int32

# Finite stand-in for "unreachable"
SENTINEL_DISTANCE = 100000.0

# Predecessor of a vertex with no known incoming path
NO_PREDECESSOR = -1

# Tile side shared by host scheduling and kernel generation
DEFAULT_BLOCK_SIZE = 16

# Edge as read from an edge list: (src, dst, weight)
Edge: TypeAlias = tuple[int, int, float]

from __future__ import annotations

from enum import IntEnum
from typing import NewType, TypeAlias

import numpy as np

# =============================================================================
# SPATIAL TYPES
# =============================================================================

# Chunk coordinates - position of a chunk in the unbounded world lattice
ChunkCoord: TypeAlias = int  # Example: x=-2, y=5
ChunkPos: TypeAlias = tuple[ChunkCoord, ChunkCoord]  # Example: (-2, 5) = chunk -2,5

# Cell coordinates inside a single chunk's grid, always 0 <= v < chunk size
CellCoord: TypeAlias = int
CellPos: TypeAlias = tuple[CellCoord, CellCoord]  # Example: (row, col)

# Discrete grid step as (dx, dy). North is -y, matching row order in a grid.
UnitStep: TypeAlias = tuple[int, int]


class Direction(IntEnum):
    """One of the four cardinal sides of a chunk or a grid cell.

    Used both for chunk-to-chunk adjacency (openings, shared edges) and for
    tile-to-tile adjacency inside a chunk. The integer value doubles as the
    row index into per-direction lookup tables.
    """

    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    @property
    def offset(self) -> UnitStep:
        return _OFFSETS[self]

    @property
    def opposite(self) -> Direction:
        return Direction((self + 2) % 4)

    @property
    def short(self) -> str:
        """One-letter name ("N", "E", "S", "W")."""
        return self.name[0]


_OFFSETS: dict[Direction, UnitStep] = {
    Direction.NORTH: (0, -1),
    Direction.EAST: (1, 0),
    Direction.SOUTH: (0, 1),
    Direction.WEST: (-1, 0),
}

# =============================================================================
# TILE TYPES
# =============================================================================

# Tile id stored in a chunk grid. 0 always means "empty / no tile".
TileId = NewType("TileId", int)

EMPTY_TILE = TileId(0)

# Square 2-D array of tile ids, indexed grid[row, col].
Grid: TypeAlias = np.ndarray

# =============================================================================
# UTILITY TYPES
# =============================================================================

# Random seed for deterministic generation.
# Can be an int for numeric seeds or a descriptive string like "burrito1".
RandomSeed: TypeAlias = int | str | None

# Inclusive min/max integer range (e.g., number of openings to draw)
IntRange: TypeAlias = tuple[int, int]

"""Fixed boundary tiles inherited from already generated neighbors."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from chunkforge.types import Direction


def edge_cells(direction: Direction, size: int) -> list[tuple[int, int]]:
    """Return the (row, col) cells along one side of a size x size grid.

    Cells are ordered left to right for NORTH/SOUTH and top to bottom for
    EAST/WEST, matching the order of an edge array.
    """
    last = size - 1
    match direction:
        case Direction.NORTH:
            return [(0, i) for i in range(size)]
        case Direction.SOUTH:
            return [(last, i) for i in range(size)]
        case Direction.WEST:
            return [(i, 0) for i in range(size)]
        case Direction.EAST:
            return [(i, last) for i in range(size)]


def grid_edge(grid: np.ndarray, direction: Direction) -> np.ndarray:
    """Copy the row or column of ``grid`` on its ``direction`` side."""
    match direction:
        case Direction.NORTH:
            return grid[0, :].copy()
        case Direction.SOUTH:
            return grid[-1, :].copy()
        case Direction.WEST:
            return grid[:, 0].copy()
        case Direction.EAST:
            return grid[:, -1].copy()


@dataclass(frozen=True, eq=False)
class EdgeConstraints:
    """Up to four fixed edges seeded into a solve.

    Each present array holds the tiles of the neighbor on that side which
    touch this grid: ``north`` is the bottom row of the chunk above, ``west``
    the rightmost column of the chunk to the left, and so on. Arrays are
    copied on creation and made read-only, so later changes to a neighbor
    never leak into a solve that has already started.
    """

    north: np.ndarray | None = None
    east: np.ndarray | None = None
    south: np.ndarray | None = None
    west: np.ndarray | None = None

    def __post_init__(self) -> None:
        for direction in Direction:
            name = direction.name.lower()
            edge = getattr(self, name)
            if edge is None:
                continue
            frozen = np.array(edge, dtype=np.int64)
            if frozen.ndim != 1:
                raise ValueError(
                    f"{name} edge must be one-dimensional, got shape {frozen.shape}"
                )
            frozen.setflags(write=False)
            object.__setattr__(self, name, frozen)

    @classmethod
    def from_edges(cls, edges: dict[Direction, np.ndarray]) -> EdgeConstraints:
        return cls(**{d.name.lower(): edge for d, edge in edges.items()})

    def get(self, direction: Direction) -> np.ndarray | None:
        return getattr(self, direction.name.lower())

    def present(self) -> Iterator[tuple[Direction, np.ndarray]]:
        """Yield (direction, edge) for every side that has a fixed edge."""
        for direction in Direction:
            edge = self.get(direction)
            if edge is not None:
                yield direction, edge

    @property
    def is_empty(self) -> bool:
        return all(self.get(direction) is None for direction in Direction)

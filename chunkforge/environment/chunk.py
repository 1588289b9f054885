"""A single generated chunk of the world.

A chunk is built exactly once, by ``ChunkRegistry``. During construction it
looks at whichever of its four neighbors already exist (without creating any)
and uses them for two things:

- Openings: a side facing a neighbor that has an opening toward us is forced
  open; a side facing a neighbor without one stays closed. Remaining sides
  are drawn at random.
- Edges: the neighbor's row or column touching the shared side is copied
  into ``EdgeConstraints`` so the solved grid fits against it.

After construction nothing in the core mutates the chunk again.
"""

from __future__ import annotations

from enum import Enum, auto
from random import Random
from typing import TYPE_CHECKING

import numpy as np

from chunkforge.config import WorldConfig
from chunkforge.environment.generators.edges import EdgeConstraints, grid_edge
from chunkforge.environment.generators.wfc_solver import SolveStats, WFCSolver
from chunkforge.types import ChunkPos, Direction, Grid

if TYPE_CHECKING:
    from chunkforge.environment.registry import ChunkRegistry


class TileSource(Enum):
    """How a chunk's data grid was produced."""

    EMPTY_BAND = auto()  # inside the always-empty band, never solved
    SOLVED = auto()  # Wave Function Collapse with learned rules
    RANDOM_FALLBACK = auto()  # no usable patterns, uniform random tiles


def neighbor_pos(pos: ChunkPos, direction: Direction) -> ChunkPos:
    dx, dy = direction.offset
    return (pos[0] + dx, pos[1] + dy)


def derive_openings(
    neighbors: dict[Direction, Chunk | None],
    rng: Random,
    world_config: WorldConfig,
) -> frozenset[Direction]:
    """Decide which sides of a new chunk are open.

    Blocked sides (facing a neighbor closed toward us) are excluded from both
    the count draw and the extra-opening coin flips.

    Args:
        neighbors: The chunk on each side, or None where none exists yet.
        rng: Random stream for this chunk's opening draw.
        world_config: Supplies the opening count range and extra chance.

    Returns:
        The final, immutable set of open sides.
    """
    forced: set[Direction] = set()
    free: list[Direction] = []

    for direction in Direction:
        neighbor = neighbors.get(direction)
        if neighbor is None:
            free.append(direction)
        elif direction.opposite in neighbor.openings:
            forced.add(direction)
        # else: the neighbor is closed toward us, so this side stays closed

    openings = set(forced)
    if not forced:
        low, high = world_config.opening_count_range
        count = rng.randint(low, high)
        for _ in range(count):
            if not free:
                break
            openings.add(free.pop(rng.randrange(len(free))))
    else:
        for direction in free:
            if rng.random() < world_config.extra_opening_chance:
                openings.add(direction)

    return frozenset(openings)


def edge_constraints_from_neighbors(
    registry: ChunkRegistry, pos: ChunkPos
) -> EdgeConstraints:
    """Capture the touching edges of every existing neighbor of ``pos``.

    The chunk above contributes its bottom row, the chunk to the west its
    rightmost column, and so on. Missing neighbors contribute nothing.
    """
    edges: dict[Direction, np.ndarray] = {}
    for direction in Direction:
        neighbor = registry.get_if_exists(*neighbor_pos(pos, direction))
        if neighbor is not None:
            edges[direction] = grid_edge(neighbor.data, direction.opposite)
    return EdgeConstraints.from_edges(edges)


class Chunk:
    """A square region of generated tiles at integer chunk coordinates.

    Attributes:
        x: Horizontal chunk coordinate, east is positive.
        y: Vertical chunk coordinate, south is positive.
        data: Generated tile ids, shape (size, size), indexed [row, col].
        render: Same shape, zero-filled, reserved for the presentation layer.
        openings: Sides of the chunk that connect to a walkable exit.
        tile_source: How ``data`` was produced.
        solve_stats: Solver counters, or None if the chunk was not solved.
    """

    def __init__(self, x: int, y: int, registry: ChunkRegistry) -> None:
        self.x = x
        self.y = y
        self._registry = registry

        size = registry.config.chunk_size
        self.data: Grid = np.zeros((size, size), dtype=np.int16)
        self.render: Grid = np.zeros((size, size), dtype=np.int16)
        self.solve_stats: SolveStats | None = None
        self.tile_source = TileSource.EMPTY_BAND

        self.openings = self._generate_openings()
        if not registry.config.is_in_empty_band(y):
            self._generate_tiles()

        self.data.setflags(write=False)

    @property
    def coord(self) -> ChunkPos:
        return (self.x, self.y)

    @property
    def size(self) -> int:
        return self.data.shape[0]

    def has_opening(self, direction: Direction) -> bool:
        return direction in self.openings

    def edge(self, direction: Direction) -> np.ndarray:
        """Return a copy of the tile row or column on the given side."""
        return grid_edge(self.data, direction)

    def _neighbors(self) -> dict[Direction, Chunk | None]:
        return {
            direction: self._registry.get_if_exists(
                *neighbor_pos(self.coord, direction)
            )
            for direction in Direction
        }

    def _generate_openings(self) -> frozenset[Direction]:
        rng = self._registry.rng_for(f"chunk.openings:{self.x},{self.y}")
        return derive_openings(self._neighbors(), rng, self._registry.config)

    def _generate_tiles(self) -> None:
        """Fill ``data`` with WFC, or with random tiles if no rules exist."""
        world_config = self._registry.config
        rng = self._registry.rng_for(f"chunk.tiles:{self.x},{self.y}")
        rules = self._registry.rules

        if rules is None:
            self.data = self._random_tiles(rng, world_config)
            self.tile_source = TileSource.RANDOM_FALLBACK
            return

        constraints = edge_constraints_from_neighbors(self._registry, self.coord)
        size = world_config.chunk_size
        solver = WFCSolver(
            size,
            rules,
            rng,
            constraints,
            max_sweeps=world_config.propagation_sweep_factor * size * size,
        )
        self.data = solver.solve()
        self.solve_stats = solver.stats
        self.tile_source = TileSource.SOLVED

    @staticmethod
    def _random_tiles(rng: Random, world_config: WorldConfig) -> Grid:
        size = world_config.chunk_size
        return np.array(
            [
                [rng.randrange(world_config.tile_count) for _ in range(size)]
                for _ in range(size)
            ],
            dtype=np.int16,
        )

    def __repr__(self) -> str:
        opened = "".join(d.short for d in sorted(self.openings))
        return f"Chunk(x={self.x}, y={self.y}, openings={opened or '-'})"

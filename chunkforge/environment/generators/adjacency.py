"""Adjacency rules learned from example patterns.

For every tile id and each of the four directions, the rules record which
tile ids were ever seen immediately next to it in that direction. Rules are
stored as one bitmask per (direction, tile) so the solver can intersect
candidate sets with plain integer operations:

    neighbor_masks[Direction.EAST, 3] & (1 << 5)  # may 5 sit east of 3?

Directions are learned independently. Seeing B east of A records A -> B for
EAST and B -> A for WEST because both cells are visited, but nothing forces
the table to be symmetric when examples disagree at their borders.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np

from chunkforge.types import Direction

logger = logging.getLogger(__name__)

# Direction utilities
DIRECTIONS: tuple[Direction, ...] = tuple(Direction)
OPPOSITE_DIR: dict[Direction, Direction] = {d: d.opposite for d in Direction}
DIR_OFFSETS: dict[Direction, tuple[int, int]] = {d: d.offset for d in Direction}

MAX_TILE_COUNT = 64


def mask_to_tiles(mask: int) -> list[int]:
    """Expand a tile bitmask into its tile ids, ascending."""
    tiles = []
    bit = 0
    while mask:
        if mask & 1:
            tiles.append(bit)
        mask >>= 1
        bit += 1
    return tiles


def tiles_to_mask(tiles: Iterable[int]) -> int:
    mask = 0
    for tile in tiles:
        mask |= 1 << tile
    return mask


class AdjacencyRules:
    """Per-direction tile compatibility learned from examples.

    Attributes:
        tile_count: Number of tile ids covered, ids run 0..tile_count-1.
    """

    def __init__(self, tile_count: int) -> None:
        if not 1 <= tile_count <= MAX_TILE_COUNT:
            raise ValueError(
                f"AdjacencyRules supports 1 to {MAX_TILE_COUNT} tiles, got {tile_count}"
            )
        self.tile_count = tile_count
        # _masks[direction][tile] = bitmask of tiles allowed in that direction
        self._masks: list[list[int]] = [[0] * tile_count for _ in DIRECTIONS]

    @classmethod
    def from_patterns(
        cls, patterns: Iterable[np.ndarray], tile_count: int
    ) -> AdjacencyRules:
        rules = cls(tile_count)
        rules.learn(patterns)
        return rules

    @property
    def all_tiles_mask(self) -> int:
        """Bitmask with every tile id set."""
        return (1 << self.tile_count) - 1

    def learn(self, examples: Iterable[np.ndarray]) -> None:
        """Record every in-bounds neighbor pair of every example.

        May be called repeatedly; results accumulate. Learning the same
        examples twice leaves the rules unchanged.
        """
        for example in examples:
            self._learn_example(np.asarray(example))

    def _learn_example(self, example: np.ndarray) -> None:
        height, width = example.shape
        skipped = 0

        for y in range(height):
            for x in range(width):
                tile = int(example[y, x])
                if not 0 <= tile < self.tile_count:
                    skipped += 1
                    continue

                for direction in DIRECTIONS:
                    dx, dy = DIR_OFFSETS[direction]
                    nx, ny = x + dx, y + dy
                    if not (0 <= nx < width and 0 <= ny < height):
                        continue
                    neighbor = int(example[ny, nx])
                    if 0 <= neighbor < self.tile_count:
                        self._masks[direction][tile] |= 1 << neighbor

        if skipped:
            logger.warning(
                f"Ignored {skipped} cells with tile ids outside "
                f"0..{self.tile_count - 1} in a {width}x{height} example"
            )

    def is_allowed(self, tile: int, neighbor: int, direction: Direction) -> bool:
        """Return True if ``neighbor`` may sit in ``direction`` from ``tile``."""
        if not (0 <= tile < self.tile_count and 0 <= neighbor < self.tile_count):
            return False
        return bool(self._masks[direction][tile] & (1 << neighbor))

    def allowed_neighbors(self, tile: int, direction: Direction) -> frozenset[int]:
        """Return the tile ids that may sit in ``direction`` from ``tile``."""
        if not 0 <= tile < self.tile_count:
            return frozenset()
        return frozenset(mask_to_tiles(self._masks[direction][tile]))

    def neighbor_mask(self, tile: int, direction: Direction) -> int:
        """Bitmask form of ``allowed_neighbors``."""
        if not 0 <= tile < self.tile_count:
            return 0
        return self._masks[direction][tile]

    @property
    def neighbor_masks(self) -> np.ndarray:
        """Read-only (4, tile_count) uint64 table indexed [direction, tile]."""
        table = np.array(self._masks, dtype=np.uint64)
        table.setflags(write=False)
        return table

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AdjacencyRules):
            return NotImplemented
        return self.tile_count == other.tile_count and self._masks == other._masks

    def __repr__(self) -> str:
        known = sum(1 for masks in self._masks for m in masks if m)
        return f"AdjacencyRules(tile_count={self.tile_count}, rules={known})"

"""Shared builders for chunk generation tests."""

from __future__ import annotations

import numpy as np

from chunkforge.environment.generators.adjacency import AdjacencyRules
from chunkforge.environment.generators.patterns import PatternLibrary

TILE_COUNT = 18


def rules_from(
    *examples: list[list[int]], tile_count: int = TILE_COUNT
) -> AdjacencyRules:
    """Learn rules from literal example grids."""
    return AdjacencyRules.from_patterns(
        [np.array(example) for example in examples], tile_count
    )


def strip_and_column(sequence: list[int]) -> list[list[list[int]]]:
    """One horizontal strip and one vertical strip of the same tiles.

    Every consecutive pair in ``sequence`` becomes legal in all four
    directions.
    """
    return [[sequence], [[tile] for tile in sequence]]


def permissive_library() -> PatternLibrary:
    """Tiles 1 and 2 may sit next to each other in any direction."""
    return PatternLibrary(strip_and_column([1, 1, 2, 2, 1]))


def permissive_rules() -> AdjacencyRules:
    return AdjacencyRules.from_patterns(permissive_library(), TILE_COUNT)


def gradient_rules() -> AdjacencyRules:
    """1 <-> 2 <-> 3 in every direction, but 1 and 3 never touch."""
    return rules_from(*strip_and_column([1, 1, 2, 2, 3, 3, 2, 1]))

"""Tile generation for chunks.

This package provides the pieces a chunk needs to fill its grid:
- PatternLibrary: Example tile grids parsed from a text source
- AdjacencyRules: Per-direction tile compatibility learned from examples
- EdgeConstraints: Fixed boundary tiles copied from existing neighbors
- WFCSolver: Wave Function Collapse solver that honors rules and edges
"""

from .adjacency import (
    DIR_OFFSETS,
    DIRECTIONS,
    OPPOSITE_DIR,
    AdjacencyRules,
)
from .edges import EdgeConstraints
from .patterns import (
    PatternLibrary,
    PatternSourceError,
    format_patterns,
    parse_patterns,
)
from .wfc_solver import SolveStats, WFCSolver

__all__ = [
    "DIRECTIONS",
    "DIR_OFFSETS",
    "OPPOSITE_DIR",
    "AdjacencyRules",
    "EdgeConstraints",
    "PatternLibrary",
    "PatternSourceError",
    "SolveStats",
    "WFCSolver",
    "format_patterns",
    "parse_patterns",
]

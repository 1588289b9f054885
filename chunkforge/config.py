"""
Configuration constants.

Centralizes all magic numbers and configuration values used by chunk
generation. The module-level constants are the defaults; ``WorldConfig``
bundles them into one value that can be overridden per registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from chunkforge.types import IntRange, RandomSeed

# =============================================================================
# GENERAL
# =============================================================================

# WORLD_SEED = None
WORLD_SEED: RandomSeed = "burrito1"

# =============================================================================
# CHUNKS
# =============================================================================

# Side length of a chunk's tile grid, in tiles.
CHUNK_SIZE = 8

# Number of distinct tile ids (0 .. TILE_COUNT - 1). 0 is the empty tile.
TILE_COUNT = 18

# Chunks whose y coordinate is <= this value are never solved and stay empty,
# giving the world an always-traversable starting band. None disables it.
EMPTY_BAND_MAX_Y: int | None = 3

# =============================================================================
# OPENINGS
# =============================================================================

# Inclusive range for the number of openings drawn when no neighbor forces one.
OPENING_COUNT_RANGE: IntRange = (1, 4)

# Chance of opening each remaining free side once at least one side is forced.
EXTRA_OPENING_CHANCE = 0.5

# =============================================================================
# WAVE FUNCTION COLLAPSE
# =============================================================================

# Propagation runaway guard. An N x N chunk allows factor * N * N full-grid
# sweeps, i.e. factor * N * N * N * N cell revisions, per propagation pass.
# Reaching it indicates a broken rule set.
PROPAGATION_SWEEP_FACTOR = 10

# Example pattern file the adjacency rules are learned from.
# None means the packaged default (chunkforge/environment/data/examples.txt).
PATTERN_SOURCE: Path | None = None


@dataclass(frozen=True)
class WorldConfig:
    """Tunable parameters for one world.

    Defaults mirror the module-level constants above. Instances are immutable
    and validated on creation.

    Attributes:
        chunk_size: Side length of every chunk grid.
        tile_count: Number of tile ids, ids run from 0 to tile_count - 1.
        empty_band_max_y: Chunks with y at most this value stay empty. None
            disables.
        opening_count_range: Inclusive (min, max) openings for unforced chunks.
        extra_opening_chance: Per-side chance of an extra opening.
        propagation_sweep_factor: Multiplier for the propagation runaway guard.
        pattern_source: Path to the example pattern file, or None for default.
    """

    chunk_size: int = CHUNK_SIZE
    tile_count: int = TILE_COUNT
    empty_band_max_y: int | None = EMPTY_BAND_MAX_Y
    opening_count_range: IntRange = OPENING_COUNT_RANGE
    extra_opening_chance: float = EXTRA_OPENING_CHANCE
    propagation_sweep_factor: int = PROPAGATION_SWEEP_FACTOR
    pattern_source: Path | None = PATTERN_SOURCE

    def __post_init__(self) -> None:
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if not 1 <= self.tile_count <= 64:
            raise ValueError(
                f"tile_count must be between 1 and 64, got {self.tile_count}"
            )
        low, high = self.opening_count_range
        if not 0 <= low <= high <= 4:
            raise ValueError(
                f"opening_count_range must satisfy 0 <= min <= max <= 4, "
                f"got {self.opening_count_range}"
            )
        if not 0.0 <= self.extra_opening_chance <= 1.0:
            raise ValueError(
                "extra_opening_chance must be between 0.0 and 1.0, "
                f"got {self.extra_opening_chance}"
            )
        if self.propagation_sweep_factor < 1:
            raise ValueError(
                "propagation_sweep_factor must be positive, "
                f"got {self.propagation_sweep_factor}"
            )

    def is_in_empty_band(self, y: int) -> bool:
        """Return True if chunks at row ``y`` are left unsolved and empty."""
        return self.empty_band_max_y is not None and y <= self.empty_band_max_y

"""Lazy, memoized store of generated chunks.

The registry is the only authority on whether a chunk exists. Consumers such
as a renderer call ``get_or_create`` for whatever coordinates they need; a
missing chunk is generated on the spot, cached, and returned. Chunks under
construction only ever read their neighbors through ``get_if_exists``, so
generating one chunk never triggers the creation of another.

Example:
    registry = ChunkRegistry(seed=1234)
    chunk = registry.get_or_create(0, 5)
    chunk.data      # (8, 8) tile ids
    chunk.openings  # frozenset of Direction
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from random import Random

from chunkforge import config
from chunkforge.config import WorldConfig
from chunkforge.environment.chunk import Chunk
from chunkforge.environment.generators.adjacency import AdjacencyRules
from chunkforge.environment.generators.patterns import (
    PatternLibrary,
    PatternSourceError,
)
from chunkforge.types import ChunkPos, RandomSeed
from chunkforge.util.live_vars import (
    MetricSpec,
    live_variable_registry,
    record_live_metric,
    record_time_live_variable,
)
from chunkforge.util.metrics import CumulativeVar
from chunkforge.util.rng import RNGProvider

logger = logging.getLogger(__name__)

GENERATION_METRICS: tuple[MetricSpec, ...] = (
    MetricSpec(
        "time.chunk.generate_ms",
        "Wall time to generate one chunk",
        num_samples=500,
    ),
    MetricSpec(
        "wfc.contradictions",
        "Cells per solved chunk that ended with no candidates",
        num_samples=500,
        stats_type=CumulativeVar,
    ),
    MetricSpec(
        "wfc.propagation_cap_hits",
        "1 for each solve that stopped propagation at the runaway guard",
        num_samples=500,
        stats_type=CumulativeVar,
    ),
)


def register_generation_metrics() -> None:
    """Register chunk generation metrics. Safe to call more than once."""
    live_variable_registry.register_metrics(GENERATION_METRICS)


class ChunkRegistry:
    """Sparse map from chunk coordinates to generated chunks.

    Attributes:
        config: World parameters shared by every chunk.
        spawn_chunk: The first chunk ever created, or None.
    """

    def __init__(
        self,
        world_config: WorldConfig | None = None,
        seed: RandomSeed = config.WORLD_SEED,
        rules: AdjacencyRules | None = None,
        patterns: PatternLibrary | None = None,
    ) -> None:
        """Create an empty registry.

        Args:
            world_config: World parameters. Defaults to ``WorldConfig()``.
            seed: World seed. Chunk content depends only on this seed and the
                chunk's coordinates (and on which neighbors already exist).
                None gives a different world every run.
            rules: Pre-learned adjacency rules. Skips pattern loading.
            patterns: Example patterns to learn from instead of the
                configured pattern source. Ignored if ``rules`` is given.
        """
        self.config = world_config if world_config is not None else WorldConfig()
        self._rng = RNGProvider(seed)
        self._chunks: dict[ChunkPos, Chunk] = {}
        self._pending: set[ChunkPos] = set()
        self.spawn_chunk: Chunk | None = None

        if rules is not None and rules.tile_count != self.config.tile_count:
            raise ValueError(
                f"Rules cover {rules.tile_count} tiles but the world uses "
                f"{self.config.tile_count}"
            )
        self._rules = rules
        self._rules_loaded = rules is not None
        self._patterns = patterns

        register_generation_metrics()

    @property
    def seed(self) -> RandomSeed:
        return self._rng.master_seed

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    @property
    def rules(self) -> AdjacencyRules | None:
        """Adjacency rules shared by all chunks, learned on first use.

        None means no usable patterns were found; chunks then fall back to
        random tiles.
        """
        if not self._rules_loaded:
            self._rules = self._learn_rules()
            self._rules_loaded = True
        return self._rules

    def _load_patterns(self) -> PatternLibrary | None:
        if self._patterns is not None:
            return self._patterns

        source = self.config.pattern_source
        try:
            if source is None:
                return PatternLibrary.load_default()
            return PatternLibrary.from_file(source)
        except PatternSourceError as e:
            logger.error(f"{e}. Falling back to random terrain.")
            return None

    def _learn_rules(self) -> AdjacencyRules | None:
        patterns = self._load_patterns()
        if patterns is None:
            return None
        if patterns.is_empty:
            logger.warning("No example patterns found! Falling back to random terrain.")
            return None

        rules = AdjacencyRules.from_patterns(patterns, self.config.tile_count)
        logger.info(f"Learned {rules} from {len(patterns)} example patterns")
        return rules

    # ------------------------------------------------------------------
    # Randomness
    # ------------------------------------------------------------------

    def rng_for(self, domain: str) -> Random:
        """Return a fresh random stream for ``domain`` derived from the world seed."""
        return self._rng.derive(domain)

    # ------------------------------------------------------------------
    # Chunk access
    # ------------------------------------------------------------------

    def exists(self, x: int, y: int) -> bool:
        return (x, y) in self._chunks

    def get_if_exists(self, x: int, y: int) -> Chunk | None:
        """Return the chunk at (x, y) without ever creating it."""
        return self._chunks.get((x, y))

    def get_or_create(self, x: int, y: int) -> Chunk:
        """Return the chunk at (x, y), generating it first if needed.

        Repeated calls return the same instance.

        Raises:
            RuntimeError: If called for a chunk that is still being built.
        """
        pos = (x, y)
        chunk = self._chunks.get(pos)
        if chunk is not None:
            return chunk

        if pos in self._pending:
            raise RuntimeError(f"Chunk {pos} requested while it is being generated")

        self._pending.add(pos)
        try:
            with record_time_live_variable("time.chunk.generate_ms"):
                chunk = Chunk(x, y, self)
        finally:
            self._pending.discard(pos)

        self._chunks[pos] = chunk
        self._record_solve_metrics(chunk)
        logger.debug(f"Generated {chunk} ({chunk.tile_source.name})")

        if self.spawn_chunk is None:
            self.spawn_chunk = chunk
            logger.info(f"Spawn chunk set: {chunk}")

        return chunk

    def _record_solve_metrics(self, chunk: Chunk) -> None:
        stats = chunk.solve_stats
        if stats is None:
            return
        record_live_metric("wfc.contradictions", stats.contradictions)
        record_live_metric(
            "wfc.propagation_cap_hits", 1.0 if stats.propagation_cap_hit else 0.0
        )

    def __contains__(self, pos: object) -> bool:
        return pos in self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    def __iter__(self) -> Iterator[Chunk]:
        """Iterate over chunks in creation order."""
        return iter(self._chunks.values())

    def __repr__(self) -> str:
        return f"ChunkRegistry(seed={self.seed!r}, chunks={len(self._chunks)})"

"""Tests for the lazily populated chunk registry."""

from __future__ import annotations

import numpy as np
import pytest

from chunkforge.config import WorldConfig
from chunkforge.environment.registry import ChunkRegistry
from chunkforge.types import Direction
from chunkforge.util.live_vars import live_variable_registry
from tests.helpers import permissive_library, permissive_rules, rules_from


def assert_openings_consistent(registry: ChunkRegistry) -> None:
    """Every pair of existing neighbors agrees on the side they share."""
    for chunk in registry:
        for direction in Direction:
            dx, dy = direction.offset
            other = registry.get_if_exists(chunk.x + dx, chunk.y + dy)
            if other is None:
                continue
            assert chunk.has_opening(direction) == other.has_opening(
                direction.opposite
            ), f"{chunk} and {other} disagree on {direction.name}"


class TestLookup:
    """Tests for get_or_create, exists and get_if_exists."""

    def test_get_or_create_returns_same_instance(self) -> None:
        registry = ChunkRegistry(seed=1)

        first = registry.get_or_create(0, 0)

        assert registry.get_or_create(0, 0) is first
        assert len(registry) == 1

    def test_queries_never_create(self) -> None:
        registry = ChunkRegistry(seed=1)

        assert not registry.exists(3, 3)
        assert registry.get_if_exists(3, 3) is None
        assert (3, 3) not in registry
        assert len(registry) == 0

        chunk = registry.get_or_create(3, 3)

        assert registry.exists(3, 3)
        assert registry.get_if_exists(3, 3) is chunk
        assert (3, 3) in registry

    def test_negative_coordinates(self) -> None:
        registry = ChunkRegistry(seed=1)
        chunk = registry.get_or_create(-4, -9)

        assert chunk.coord == (-4, -9)
        assert registry.exists(-4, -9)

    def test_spawn_chunk_is_first_created(self) -> None:
        registry = ChunkRegistry(seed=1)
        assert registry.spawn_chunk is None

        first = registry.get_or_create(0, 0)
        registry.get_or_create(1, 0)

        assert registry.spawn_chunk is first

    def test_iteration_follows_creation_order(self) -> None:
        registry = ChunkRegistry(seed=1)
        for pos in [(2, 0), (0, 0), (1, 0)]:
            registry.get_or_create(*pos)

        assert [chunk.coord for chunk in registry] == [(2, 0), (0, 0), (1, 0)]

    def test_reentrant_creation_is_rejected(self) -> None:
        registry = ChunkRegistry(seed=1)
        registry._pending.add((1, 5))

        with pytest.raises(RuntimeError, match="being generated"):
            registry.get_or_create(1, 5)

    def test_repr(self) -> None:
        registry = ChunkRegistry(seed=7)
        registry.get_or_create(0, 0)

        assert repr(registry) == "ChunkRegistry(seed=7, chunks=1)"


class TestOpeningConsistency:
    """Neighboring chunks always agree on shared openings."""

    @pytest.mark.parametrize("seed", [1, 2, 3, "burrito1"])
    def test_row_major_block(self, seed: int | str) -> None:
        registry = ChunkRegistry(seed=seed)
        for y in range(5):
            for x in range(5):
                registry.get_or_create(x, y)

        assert_openings_consistent(registry)

    @pytest.mark.parametrize("seed", [4, 5, 6])
    def test_scattered_order(self, seed: int) -> None:
        registry = ChunkRegistry(seed=seed)
        positions = [(x, y) for y in range(-2, 3) for x in range(-2, 3)]
        for pos in reversed(positions[::2] + positions[1::2]):
            registry.get_or_create(*pos)

        assert_openings_consistent(registry)


class TestDeterminism:
    """The same seed and creation order always produce the same world."""

    @staticmethod
    def _build(seed: int | str) -> ChunkRegistry:
        registry = ChunkRegistry(seed=seed)
        for y in range(3, 7):
            for x in range(-1, 2):
                registry.get_or_create(x, y)
        return registry

    def test_same_seed_same_world(self) -> None:
        first = self._build(1234)
        second = self._build(1234)

        for a, b in zip(first, second, strict=True):
            assert a.coord == b.coord
            assert a.openings == b.openings
            np.testing.assert_array_equal(a.data, b.data)

    def test_different_seeds_differ(self) -> None:
        first = self._build(1234)
        second = self._build(4321)

        assert any(
            a.openings != b.openings or (a.data != b.data).any()
            for a, b in zip(first, second, strict=True)
        )

    def test_isolated_chunk_ignores_unrelated_generation(self) -> None:
        """A chunk with no neighbors depends only on the seed and its position."""
        busy = ChunkRegistry(seed=99)
        for x in range(10, 14):
            busy.get_or_create(x, 8)
        late = busy.get_or_create(0, 5)

        fresh = ChunkRegistry(seed=99).get_or_create(0, 5)

        assert late.openings == fresh.openings
        np.testing.assert_array_equal(late.data, fresh.data)


class TestRules:
    """Tests for how the registry obtains adjacency rules."""

    def test_rules_are_learned_once(self) -> None:
        registry = ChunkRegistry(seed=1, patterns=permissive_library())

        assert registry.rules is registry.rules
        assert registry.rules == permissive_rules()

    def test_default_rules_come_from_packaged_patterns(self) -> None:
        rules = ChunkRegistry(seed=1).rules

        assert rules is not None
        assert rules.tile_count == 18

    def test_given_rules_are_used_as_is(self) -> None:
        rules = rules_from([[7, 7], [7, 7]])
        registry = ChunkRegistry(seed=1, rules=rules)

        assert registry.rules is rules
        assert (registry.get_or_create(0, 4).data == 7).all()

    def test_tile_count_mismatch_is_rejected(self) -> None:
        with pytest.raises(ValueError, match="Rules cover 18 tiles"):
            ChunkRegistry(WorldConfig(tile_count=20), rules=permissive_rules())


class TestMetrics:
    """Tests for generation metrics recorded through live variables."""

    def test_generation_metrics_recorded(self) -> None:
        registry = ChunkRegistry(seed=1, rules=permissive_rules())
        registry.get_or_create(0, 0)
        registry.get_or_create(0, 4)

        timing = live_variable_registry.get_variable("time.chunk.generate_ms")
        contradictions = live_variable_registry.get_variable("wfc.contradictions")
        cap_hits = live_variable_registry.get_variable("wfc.propagation_cap_hits")

        assert timing is not None and timing.stats_var is not None
        assert timing.stats_var.sample_count == 2
        # Only the solved chunk reports solver counters.
        assert contradictions is not None and contradictions.stats_var is not None
        assert contradictions.stats_var.sample_count == 1
        assert cap_hits is not None and cap_hits.stats_var is not None
        assert cap_hits.stats_var.sample_count == 1

    def test_registering_twice_is_harmless(self) -> None:
        ChunkRegistry(seed=1)
        ChunkRegistry(seed=2)

        assert live_variable_registry.get_variable("wfc.contradictions") is not None

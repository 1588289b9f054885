"""Unit tests for the seeded RNG streams."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from random import Random

from chunkforge.util import rng
from chunkforge.util.rng import RNGProvider, derive_seed


class TestRNGProvider:
    """Tests for RNGProvider seed derivation and isolation."""

    def test_same_seed_produces_same_sequence(self) -> None:
        """Same master seed + domain produces identical sequence."""
        stream1 = RNGProvider(master_seed=12345).get("world.fallback")
        stream2 = RNGProvider(master_seed=12345).get("world.fallback")

        values1 = [stream1.randint(1, 20) for _ in range(10)]
        values2 = [stream2.randint(1, 20) for _ in range(10)]

        assert values1 == values2

    def test_string_seeds_are_supported(self) -> None:
        stream1 = RNGProvider(master_seed="burrito1").get("world.fallback")
        stream2 = RNGProvider(master_seed="burrito1").get("world.fallback")

        assert [stream1.random() for _ in range(5)] == [
            stream2.random() for _ in range(5)
        ]

    def test_different_seeds_produce_different_sequences(self) -> None:
        """Different master seeds produce different sequences."""
        stream1 = RNGProvider(master_seed=111).get("world.fallback")
        stream2 = RNGProvider(master_seed=222).get("world.fallback")

        values1 = [stream1.randint(1, 1000) for _ in range(10)]
        values2 = [stream2.randint(1, 1000) for _ in range(10)]

        assert values1 != values2

    def test_get_caches_streams(self) -> None:
        provider = RNGProvider(master_seed=42)

        assert provider.get("domain.a") is provider.get("domain.a")
        assert provider.get("domain.a") is not provider.get("domain.b")

    def test_different_domains_are_isolated(self) -> None:
        """Consuming one domain never shifts another."""
        quiet = RNGProvider(master_seed=42)
        busy = RNGProvider(master_seed=42)
        _ = [busy.get("domain.b").randint(1, 1000) for _ in range(100)]

        values_quiet = [quiet.get("domain.a").randint(1, 1000) for _ in range(5)]
        values_busy = [busy.get("domain.a").randint(1, 1000) for _ in range(5)]

        assert values_quiet == values_busy


class TestDerive:
    """Tests for fresh per-chunk streams."""

    def test_derive_returns_fresh_generators(self) -> None:
        """Each derive() call starts the same sequence from the beginning."""
        provider = RNGProvider(master_seed=7)
        first = provider.derive("chunk.tiles:0,4")
        first.random()
        second = provider.derive("chunk.tiles:0,4")

        assert isinstance(second, Random)
        assert second is not first
        assert second.random() == provider.derive("chunk.tiles:0,4").random()

    def test_derive_matches_derived_seed(self) -> None:
        provider = RNGProvider(master_seed=7)
        expected = Random(derive_seed(7, "chunk.tiles:1,5")).random()

        assert provider.derive("chunk.tiles:1,5").random() == expected

    def test_derive_does_not_touch_cached_streams(self) -> None:
        provider = RNGProvider(master_seed=7)
        untouched = RNGProvider(master_seed=7)

        provider.derive("chunk.tiles:1,5").random()

        assert provider.get("chunk.tiles:1,5").random() == (
            untouched.get("chunk.tiles:1,5").random()
        )

    def test_unseeded_provider_is_not_reproducible(self) -> None:
        """A None seed gives system entropy, so sequences differ."""
        provider = RNGProvider(master_seed=None)
        a = [provider.derive("x").getrandbits(64) for _ in range(3)]
        b = [provider.derive("x").getrandbits(64) for _ in range(3)]

        assert a != b

    def test_derive_seed_is_stable(self) -> None:
        """Seeds come from crc32, so they never vary between runs."""
        assert derive_seed(12345, "chunk.openings:0,4") == derive_seed(
            12345, "chunk.openings:0,4"
        )
        assert derive_seed(12345, "chunk.openings:0,4") != derive_seed(
            12345, "chunk.openings:4,0"
        )


def test_module_streams_are_cached_by_domain() -> None:
    """The metrics sampler keeps one module-level stream."""
    stream = rng.get("util.metrics")

    assert isinstance(stream, Random)
    assert rng.get("util.metrics") is stream


class TestCrossSessionDeterminism:
    """Tests that verify determinism across Python sessions.

    These tests spawn subprocesses to verify that seeds and generated chunks
    come out identical in separate Python processes (which would fail if
    we used hash() instead of crc32).
    """

    def _run_twice(self, script: str) -> tuple[str, str]:
        outputs = []
        for _ in range(2):
            result = subprocess.run(
                [sys.executable, "-c", script],
                capture_output=True,
                text=True,
                cwd=str(Path(__file__).resolve().parents[2]),
            )
            assert result.returncode == 0, f"Process failed: {result.stderr}"
            outputs.append(result.stdout.strip())
        return outputs[0], outputs[1]

    def test_seed_derivation_is_deterministic_across_processes(self) -> None:
        """Same seed produces same sequence in different Python processes."""
        script = """
import sys
sys.path.insert(0, '.')
from chunkforge.util.rng import RNGProvider
provider = RNGProvider(master_seed=12345)
stream = provider.get("test.cross_session")
values = [stream.randint(1, 10000) for _ in range(5)]
print(",".join(map(str, values)))
"""
        values1, values2 = self._run_twice(script)

        assert values1 == values2, (
            f"Cross-session determinism failed!\n"
            f"Process 1: {values1}\n"
            f"Process 2: {values2}"
        )

    def test_chunks_are_deterministic_across_processes(self) -> None:
        script = """
import sys
sys.path.insert(0, '.')
from chunkforge.environment.registry import ChunkRegistry
registry = ChunkRegistry(seed="burrito1")
chunk = registry.get_or_create(0, 4)
print(sorted(int(d) for d in chunk.openings), chunk.data.tolist())
"""
        values1, values2 = self._run_twice(script)

        assert values1 == values2

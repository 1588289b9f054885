"""Deterministic random number generation with isolated streams.

Every consumer of randomness (opening draws, tile solving, fallback terrain,
metrics sampling) gets its own random stream derived from a world seed. This
ensures that:

1. A world is fully reproducible from the same seed, across processes
2. Changes to one system's random consumption don't cascade to others
3. The order in which chunks are generated doesn't shift their content

Usage:
    # One provider per world
    provider = RNGProvider(config.WORLD_SEED)

    # Fresh, uncached stream for a one-off job such as a single chunk
    tiles_rng = provider.derive("chunk.tiles:3,7")

    # Long-lived module stream for code that has no world in hand
    from chunkforge.util import rng
    _rng = rng.get("util.metrics")

Domain naming convention (hierarchical):
    - "chunk.openings:<x>,<y>", "chunk.tiles:<x>,<y>"
    - "util.metrics"
"""

from __future__ import annotations

import zlib
from random import Random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chunkforge.types import RandomSeed


def derive_seed(master_seed: int | str, domain: str) -> int:
    """Derive a stable integer seed for ``domain`` from ``master_seed``.

    Uses crc32 instead of hash() - hash() is randomized per Python session
    via PYTHONHASHSEED, which would break cross-session determinism.
    """
    return zlib.crc32(f"{master_seed}:{domain}".encode())


class RNGProvider:
    """Provides isolated RNG streams derived from one master seed.

    Each domain gets its own Random instance derived deterministically
    from the master seed. Domains are identified by string names.
    """

    def __init__(self, master_seed: RandomSeed = None) -> None:
        self._master_seed = master_seed
        self._streams: dict[str, Random] = {}

    @property
    def master_seed(self) -> RandomSeed:
        return self._master_seed

    def get(self, domain: str) -> Random:
        """Get the long-lived stream for ``domain``, creating it on first use."""
        if domain not in self._streams:
            self._streams[domain] = self.derive(domain)
        return self._streams[domain]

    def derive(self, domain: str) -> Random:
        """Return a fresh Random for ``domain`` that the provider does not keep.

        Two calls with the same domain and master seed return generators that
        produce identical sequences. Use this for per-chunk streams so the
        provider doesn't accumulate one cached stream per chunk.
        """
        if self._master_seed is None:
            # No seed: use system entropy for non-deterministic behavior
            return Random()
        return Random(derive_seed(self._master_seed, domain))


# =============================================================================
# Module-level API
# =============================================================================

_provider: RNGProvider | None = None


def get(domain: str) -> Random:
    """Get a stream for the named domain from the module-level provider.

    The provider is created on first use without a seed, so module streams
    are non-deterministic. World content never draws from them.
    """
    global _provider
    if _provider is None:
        _provider = RNGProvider(None)
    return _provider.get(domain)

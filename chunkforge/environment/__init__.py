"""Chunked world generation.

- ChunkRegistry: Lazily generates and caches chunks by coordinate
- Chunk: One generated square of tiles with its openings
"""

from .chunk import Chunk, TileSource, derive_openings
from .registry import ChunkRegistry

__all__ = [
    "Chunk",
    "ChunkRegistry",
    "TileSource",
    "derive_openings",
]

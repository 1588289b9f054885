"""Example pattern loading.

Adjacency rules are learned from small hand-drawn example grids kept in a
plain text file. The format is line based:

    # comment lines and blank lines are ignored
    0 0 1 2
    0 3 4 2
    ---
    5 5
    6 6

Each non-comment line is one row of whitespace-separated tile ids. A line
containing only ``---`` ends the current example. Tokens that are not
integers, or too large for a 32-bit int, are read as the empty tile (0)
instead of failing the whole load.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from importlib import resources
from pathlib import Path

import numpy as np

from chunkforge.types import EMPTY_TILE

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
EXAMPLE_SEPARATOR = "---"
DEFAULT_PATTERN_RESOURCE = "examples.txt"

# Tokens must fit a 32-bit signed int; anything wider reads as the empty tile.
TOKEN_MIN = -(2**31)
TOKEN_MAX = 2**31 - 1


class PatternSourceError(OSError):
    """Raised when an example pattern source cannot be read."""


def _parse_token(token: str) -> int:
    try:
        value = int(token)
    except ValueError:
        return EMPTY_TILE
    if not TOKEN_MIN <= value <= TOKEN_MAX:
        return EMPTY_TILE
    return value


def _to_grid(rows: list[list[int]], index: int) -> np.ndarray | None:
    """Turn accumulated rows into a 2-D array, or None if they are ragged."""
    widths = {len(row) for row in rows}
    if len(widths) != 1:
        logger.warning(
            f"Skipping example #{index}: rows have unequal lengths {sorted(widths)}"
        )
        return None
    return np.array(rows, dtype=np.int64)


def parse_patterns(lines: Iterable[str]) -> list[np.ndarray]:
    """Parse example grids from an iterable of text lines.

    Args:
        lines: Lines of a pattern source, with or without trailing newlines.

    Returns:
        One 2-D integer array per example, in file order. Empty if the
        source holds no examples.
    """
    examples: list[np.ndarray] = []
    current: list[list[int]] = []
    seen = 0

    def flush() -> None:
        nonlocal seen
        if not current:
            return
        grid = _to_grid(current, seen)
        seen += 1
        if grid is not None:
            examples.append(grid)
        current.clear()

    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        if line == EXAMPLE_SEPARATOR:
            flush()
            continue
        current.append([_parse_token(token) for token in line.split()])

    flush()
    return examples


def format_patterns(grids: Iterable[np.ndarray | Sequence[Sequence[int]]]) -> str:
    """Serialize grids into the pattern text format read by ``parse_patterns``."""
    blocks = []
    for grid in grids:
        rows = np.asarray(grid)
        blocks.append("\n".join(" ".join(str(int(v)) for v in row) for row in rows))
    return f"\n{EXAMPLE_SEPARATOR}\n".join(blocks) + "\n"


class PatternLibrary:
    """An immutable collection of example tile grids.

    Each example is a rectangular integer array. The library is the only
    input the adjacency rule learner needs.
    """

    def __init__(self, examples: Iterable[np.ndarray | Sequence[Sequence[int]]]):
        self._examples: tuple[np.ndarray, ...] = tuple(
            self._freeze(example) for example in examples
        )

    @staticmethod
    def _freeze(example: np.ndarray | Sequence[Sequence[int]]) -> np.ndarray:
        try:
            grid = np.array(example, dtype=np.int64)
        except OverflowError as e:
            raise ValueError(f"Example pattern tile id out of range: {e}") from e
        if grid.ndim != 2 or grid.size == 0:
            raise ValueError(
                f"Example patterns must be non-empty 2-D grids, got shape {grid.shape}"
            )
        grid.setflags(write=False)
        return grid

    @classmethod
    def from_text(cls, text: str) -> PatternLibrary:
        return cls(parse_patterns(text.splitlines()))

    @classmethod
    def from_file(cls, path: Path | str) -> PatternLibrary:
        """Load examples from a pattern file.

        Raises:
            PatternSourceError: If the file cannot be opened or read.
        """
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                examples = parse_patterns(f)
        except (OSError, UnicodeDecodeError) as e:
            raise PatternSourceError(
                f"Failed to read pattern source {path}: {e}"
            ) from e

        logger.info(f"Loaded {len(examples)} example patterns from {path}")
        return cls(examples)

    @classmethod
    def load_default(cls) -> PatternLibrary:
        """Load the example patterns packaged with chunkforge."""
        source = resources.files("chunkforge.environment.data").joinpath(
            DEFAULT_PATTERN_RESOURCE
        )
        try:
            text = source.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PatternSourceError(
                f"Failed to read packaged pattern source {source}: {e}"
            ) from e
        return cls.from_text(text)

    @property
    def is_empty(self) -> bool:
        return not self._examples

    def __len__(self) -> int:
        return len(self._examples)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self._examples)

    def __getitem__(self, index: int) -> np.ndarray:
        return self._examples[index]

    def __repr__(self) -> str:
        return f"PatternLibrary({len(self._examples)} examples)"

"""Wave Function Collapse solver for chunk tile grids.

The solver fills a square grid with tile ids so that every pair of adjacent
cells satisfies the learned ``AdjacencyRules``, and so that cells along a
fixed edge are compatible with the tiles of the neighbor on the other side.

Usage:
    from chunkforge.environment.generators.wfc_solver import WFCSolver

    rules = AdjacencyRules.from_patterns(PatternLibrary.load_default(), 18)
    solver = WFCSolver(8, rules, random.Random(42), constraints)
    grid = solver.solve()  # (8, 8) int16 array, grid[row, col]

Algorithm:
    1. Every cell starts with every tile id as a candidate.
    2. Cells along fixed edges are narrowed to the tiles the neighbor's
       edge tile allows in the opposite direction.
    3. Propagation shrinks each cell to the candidates that have support
       in every in-bounds neighbor, until nothing changes.
    4. The cell with the fewest remaining candidates (ties broken at
       random) collapses to one random candidate, then propagation runs
       again. Repeat until no cell has more than one candidate.

There is no backtracking. A cell that ends up with no candidates becomes the
empty tile (0) and the rest of the grid is still completed. Propagation never
empties a cell by itself: a revision that would leave nothing is discarded.

Representation:
    Each cell's candidates are stored as a bitmask in a ``uint64`` numpy
    array (bit t set = tile t still possible), which caps tile ids at 64.
    The per-direction rule table is read once from the rules as Python ints.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from random import Random

import numpy as np

from chunkforge import config
from chunkforge.environment.generators.adjacency import (
    DIR_OFFSETS,
    DIRECTIONS,
    OPPOSITE_DIR,
    AdjacencyRules,
    mask_to_tiles,
    tiles_to_mask,
)
from chunkforge.environment.generators.edges import EdgeConstraints, edge_cells
from chunkforge.types import EMPTY_TILE, CellPos

logger = logging.getLogger(__name__)


@dataclass
class SolveStats:
    """Counters describing how a solve went.

    Attributes:
        collapses: Cells collapsed by a random choice.
        revisions: Cell revisions performed during propagation.
        contradictions: Cells left with no candidates, emitted as tile 0.
        propagation_cap_hit: True if propagation stopped at the runaway guard.
    """

    collapses: int = 0
    revisions: int = 0
    contradictions: int = 0
    propagation_cap_hit: bool = False


class WFCSolver:
    """Wave Function Collapse over a square grid of learned tiles.

    The solver is single use: construct it, optionally narrow cells with
    ``constrain_cell``, then call ``solve`` once.
    """

    def __init__(
        self,
        size: int,
        rules: AdjacencyRules,
        rng: Random,
        constraints: EdgeConstraints | None = None,
        max_sweeps: int | None = None,
    ):
        """Initialize the WFC solver.

        Args:
            size: Side length of the square grid.
            rules: Learned adjacency rules. Never modified by the solver.
            rng: Random number generator; the only source of randomness.
            constraints: Fixed edges from existing neighbors, if any.
            max_sweeps: Propagation runaway guard, in full-grid sweeps.
                Defaults to ``config.PROPAGATION_SWEEP_FACTOR * size * size``.
        """
        if size < 1:
            raise ValueError(f"Grid size must be positive, got {size}")
        if max_sweeps is None:
            max_sweeps = config.PROPAGATION_SWEEP_FACTOR * size * size
        if max_sweeps < 1:
            raise ValueError(f"max_sweeps must be positive, got {max_sweeps}")

        self.size = size
        self.rules = rules
        self.rng = rng
        self.constraints = constraints if constraints is not None else EdgeConstraints()
        self.max_sweeps = max_sweeps
        self.stats = SolveStats()

        for direction, edge in self.constraints.present():
            if len(edge) != size:
                raise ValueError(
                    f"{direction.name} edge has length {len(edge)}, expected {size}"
                )

        # _support[direction][tile] = mask of tiles allowed next to tile
        self._support: list[list[int]] = [
            [int(mask) for mask in row] for row in rules.neighbor_masks
        ]

        # Wave: one candidate bitmask per cell, indexed [row, col].
        self.wave = np.full((size, size), rules.all_tiles_mask, dtype=np.uint64)

        self._result: np.ndarray | None = None

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def constrain_cell(self, row: int, col: int, allowed: set[int]) -> None:
        """Restrict a cell to a subset of tile ids before solving.

        The intersection may leave the cell empty; that cell will come out as
        tile 0. Propagation happens when ``solve`` runs.
        """
        self._intersect(row, col, tiles_to_mask(allowed))

    def _intersect(self, row: int, col: int, mask: int) -> None:
        self.wave[row, col] = np.uint64(int(self.wave[row, col]) & mask)

    def _apply_edge_constraints(self) -> None:
        """Narrow edge cells to what the fixed neighbor tiles allow.

        A neighbor above this grid looks SOUTH at our top row, so the top row
        is narrowed with the neighbor tile's SOUTH rules, and so on.
        """
        for direction, edge in self.constraints.present():
            facing = OPPOSITE_DIR[direction]
            for (row, col), required in zip(
                edge_cells(direction, self.size), edge, strict=True
            ):
                required = int(required)
                if 0 <= required < self.rules.tile_count:
                    allowed = self._support[facing][required]
                else:
                    allowed = 0
                self._intersect(row, col, allowed)

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _neighbors(self, row: int, col: int) -> list[CellPos]:
        cells = []
        for direction in DIRECTIONS:
            dx, dy = DIR_OFFSETS[direction]
            nr, nc = row + dy, col + dx
            if 0 <= nr < self.size and 0 <= nc < self.size:
                cells.append((nr, nc))
        return cells

    def _revise(self, row: int, col: int) -> bool:
        """Drop candidates of one cell that lack support in some neighbor.

        Returns True if the cell's candidates shrank.
        """
        current = int(self.wave[row, col])
        if current.bit_count() <= 1:
            return False

        kept = current
        for direction in DIRECTIONS:
            dx, dy = DIR_OFFSETS[direction]
            nr, nc = row + dy, col + dx
            if not (0 <= nr < self.size and 0 <= nc < self.size):
                continue

            neighbor_mask = int(self.wave[nr, nc])
            support = self._support[direction]
            allowed = 0
            for tile in mask_to_tiles(kept):
                if support[tile] & neighbor_mask:
                    allowed |= 1 << tile

            # An empty subset would manufacture a contradiction purely from
            # propagation order, so it is discarded.
            if allowed and allowed != kept:
                kept = allowed

        if kept == current:
            return False
        self.wave[row, col] = np.uint64(kept)
        return True

    def _propagate(self, cells: list[CellPos]) -> None:
        """Revise cells until a fixpoint, starting from ``cells``.

        Whenever a cell shrinks, its neighbors are queued again since their
        support may have changed. Stops early at the runaway guard.
        """
        if not cells:
            return

        stack = list(cells)
        in_stack = set(cells)

        max_revisions = self.max_sweeps * self.size * self.size
        revisions = 0

        while stack:
            if revisions >= max_revisions:
                self.stats.propagation_cap_hit = True
                logger.warning(
                    f"WFC propagation stopped after {revisions} revisions "
                    f"({self.max_sweeps} sweeps) on a {self.size}x{self.size} grid; "
                    "check the adjacency rules"
                )
                return

            row, col = stack.pop()
            in_stack.discard((row, col))
            revisions += 1
            self.stats.revisions += 1

            if not self._revise(row, col):
                continue

            for neighbor in self._neighbors(row, col):
                if neighbor not in in_stack:
                    stack.append(neighbor)
                    in_stack.add(neighbor)

    # ------------------------------------------------------------------
    # Collapse
    # ------------------------------------------------------------------

    def _find_lowest_entropy_cell(self) -> CellPos | None:
        """Pick a random cell among those with the fewest candidates (>1)."""
        counts = np.bitwise_count(self.wave).ravel()
        open_cells = np.flatnonzero(counts > 1)
        if open_cells.size == 0:
            return None

        open_counts = counts[open_cells]
        tied = open_cells[open_counts == open_counts.min()]
        index = int(self.rng.choice(tied.tolist()))
        return divmod(index, self.size)

    def _collapse(self, row: int, col: int) -> bool:
        """Collapse a cell to one random candidate. False if it had none."""
        options = mask_to_tiles(int(self.wave[row, col]))
        if not options:
            return False
        choice = self.rng.choice(options)
        self.wave[row, col] = np.uint64(1 << choice)
        self.stats.collapses += 1
        return True

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def _materialize(self) -> np.ndarray:
        grid = np.zeros((self.size, self.size), dtype=np.int16)
        for row in range(self.size):
            for col in range(self.size):
                mask = int(self.wave[row, col])
                if mask == 0:
                    grid[row, col] = EMPTY_TILE
                    self.stats.contradictions += 1
                else:
                    # Lowest candidate; after collapse there is exactly one.
                    grid[row, col] = (mask & -mask).bit_length() - 1
        return grid

    def solve(self) -> np.ndarray:
        """Run the WFC algorithm to completion.

        Returns:
            A (size, size) int16 grid of tile ids, indexed [row, col]. Cells
            that hit a contradiction hold tile 0.
        """
        if self._result is not None:
            return self._result.copy()

        self._apply_edge_constraints()
        self._propagate(
            [(row, col) for row in range(self.size) for col in range(self.size)]
        )

        while True:
            cell = self._find_lowest_entropy_cell()
            if cell is None:
                break
            row, col = cell
            if not self._collapse(row, col):
                break
            self._propagate(self._neighbors(row, col))

        self._result = self._materialize()
        if self.stats.contradictions:
            logger.debug(
                f"WFC solve finished with {self.stats.contradictions} "
                "contradicted cells"
            )
        return self._result.copy()

    @property
    def wave_as_sets(self) -> list[list[set[int]]]:
        """Convert the internal bitmask wave to sets for debugging/testing."""
        return [
            [set(mask_to_tiles(int(self.wave[row, col]))) for col in range(self.size)]
            for row in range(self.size)
        ]

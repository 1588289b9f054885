#!/usr/bin/env python3
"""Benchmark chunk solving and world generation."""

from __future__ import annotations

import argparse
import json
import random
import time
from pathlib import Path

from chunkforge.config import WorldConfig
from chunkforge.environment.generators.adjacency import AdjacencyRules
from chunkforge.environment.generators.patterns import PatternLibrary
from chunkforge.environment.generators.wfc_solver import WFCSolver
from chunkforge.environment.registry import GENERATION_METRICS, ChunkRegistry
from chunkforge.util.live_vars import live_variable_registry

CHUNK_SIZES: tuple[int, ...] = (4, 8, 12, 16)


class WFCBenchmark:
    """Times isolated chunk solves and contiguous world blocks."""

    def __init__(self, iterations: int, block: int) -> None:
        self.iterations = iterations
        self.block = block
        self.rules = AdjacencyRules.from_patterns(PatternLibrary.load_default(), 18)
        self.results: dict[str, dict[str, float]] = {}

    def _run_solve_case(self, size: int) -> tuple[float, float]:
        """Return (average solve ms, average contradicted cells) for one size."""
        elapsed_total = 0.0
        contradictions = 0

        for i in range(self.iterations):
            rng = random.Random(size * 1_000 + i)
            solver = WFCSolver(size, self.rules, rng)

            start = time.perf_counter()
            solver.solve()
            elapsed_total += time.perf_counter() - start
            contradictions += solver.stats.contradictions

        return (
            (elapsed_total / self.iterations) * 1000.0,
            contradictions / self.iterations,
        )

    def _run_world_case(self) -> float:
        """Generate a block of neighboring chunks; return ms per chunk."""
        world = WorldConfig(empty_band_max_y=None)
        elapsed_total = 0.0

        for i in range(self.iterations):
            registry = ChunkRegistry(world, seed=i, rules=self.rules)
            start = time.perf_counter()
            for y in range(self.block):
                for x in range(self.block):
                    registry.get_or_create(x, y)
            elapsed_total += time.perf_counter() - start

        chunks = self.iterations * self.block * self.block
        return (elapsed_total / chunks) * 1000.0

    def run(self) -> None:
        print("Chunk WFC Benchmark")
        print("=" * 42)
        print(f"Iterations per case: {self.iterations}")
        print()
        print(f"{'Case':>12} {'Time (ms)':>12} {'Contradictions':>15}")
        print("-" * 42)

        for size in CHUNK_SIZES:
            solve_ms, contradictions = self._run_solve_case(size)
            key = f"{size}x{size}"
            self.results[key] = {"solve_ms": solve_ms}
            print(f"{key:>12} {solve_ms:12.2f} {contradictions:15.1f}")

        world_ms = self._run_world_case()
        key = f"world {self.block}x{self.block}"
        self.results[key] = {"solve_ms": world_ms}
        print(f"{key:>12} {world_ms:12.2f} {'-':>15}")
        self._print_generation_metrics()

    def _print_generation_metrics(self) -> None:
        """Show percentiles recorded by the registries during the world case."""
        print()
        for spec in GENERATION_METRICS:
            var = live_variable_registry.get_variable(spec.name)
            if var is None or var.stats_var.sample_count == 0:
                continue
            print(f"{spec.name:>28}: {var.stats_var.get_percentiles_string()}")

    def save_results(self, filename: str) -> None:
        """Save benchmark output to a JSON file."""
        with Path(filename).open("w") as f:
            json.dump(self.results, f, indent=2)
        print(f"\nSaved benchmark results to {filename}")

    def compare_with_baseline(self, baseline_file: str) -> None:
        """Compare current run with a saved baseline JSON file."""
        try:
            with Path(baseline_file).open() as f:
                baseline: dict[str, dict[str, float]] = json.load(f)
        except FileNotFoundError:
            print(f"\nBaseline file not found: {baseline_file}")
            return

        print(f"\nComparison vs baseline: {baseline_file}")
        print("=" * 64)

        for key, current in self.results.items():
            old_ms = baseline.get(key, {}).get("solve_ms", 0.0)
            if old_ms <= 0:
                continue

            new_ms = current["solve_ms"]
            delta_pct = ((new_ms - old_ms) / old_ms) * 100.0
            speed_ratio = old_ms / new_ms if new_ms > 0 else 0.0
            trend = "faster" if speed_ratio > 1.0 else "slower"

            print(
                f"{key:>12}: {new_ms:8.2f}ms vs {old_ms:8.2f}ms | "
                f"{speed_ratio:5.2f}x {trend} ({delta_pct:+6.1f}%)"
            )


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Benchmark chunk WFC")
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of runs per case (default: 5)",
    )
    parser.add_argument(
        "--block",
        type=int,
        default=4,
        help="Side length of the generated chunk block (default: 4)",
    )
    parser.add_argument("--save", type=str, help="Save current results to JSON")
    parser.add_argument(
        "--compare",
        type=str,
        help="Compare current results against baseline JSON",
    )
    args = parser.parse_args(argv)

    benchmark = WFCBenchmark(iterations=args.iterations, block=args.block)
    benchmark.run()

    if args.save:
        benchmark.save_results(args.save)

    if args.compare:
        benchmark.compare_with_baseline(args.compare)


if __name__ == "__main__":
    main()

from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager, nullcontext, suppress
from dataclasses import dataclass
from time import perf_counter
from typing import NamedTuple

from .metrics import MostRecentNVar, StatsVar


class MetricSpec(NamedTuple):
    """Definition for a metric to register in batch."""

    name: str
    description: str
    num_samples: int = 100
    stats_type: type[StatsVar] = MostRecentNVar


@dataclass
class LiveVariable:
    """A named metric whose samples are tracked for later inspection."""

    name: str
    description: str
    stats_var: StatsVar

    def record_value(self, value: float) -> None:
        self.stats_var.record(value)


class LiveVariableRegistry:
    """Registry for all ``LiveVariable`` metrics.

    When ``strict`` is ``True`` (the default), attempting to record a metric
    that has not been registered will raise immediately.  Test fixtures that
    clear the registry should set ``strict = False`` to avoid crashes from
    timing helpers that fire in unrelated test code.
    """

    def __init__(self) -> None:
        self._variables: dict[str, LiveVariable] = {}
        self.strict: bool = True

    def register_metric(
        self,
        name: str,
        description: str = "",
        stats_type: type[StatsVar] = MostRecentNVar,
        num_samples: int = 1000,
    ) -> LiveVariable:
        """Register a metric variable that only tracks statistics.

        Raises:
            ValueError: If ``name`` is already registered.
        """
        if name in self._variables:
            raise ValueError(f"Live variable '{name}' already registered")

        live_var = LiveVariable(
            name=name,
            description=description,
            stats_var=stats_type(num_samples),
        )
        self._variables[name] = live_var
        return live_var

    def register_metrics(self, specs: Sequence[MetricSpec]) -> None:
        """Register metrics from ``MetricSpec`` entries, skipping known names."""
        for spec in specs:
            if spec.name in self._variables:
                continue
            self.register_metric(
                spec.name,
                description=spec.description,
                stats_type=spec.stats_type,
                num_samples=spec.num_samples,
            )

    def get_variable(self, name: str) -> LiveVariable | None:
        """Retrieve a registered ``LiveVariable`` by name."""
        return self._variables.get(name)

    def record_metric(self, name: str, value: float) -> None:
        """Record a value to a metric variable.

        Raises:
            KeyError: If the metric name is not registered.
        """
        var = self.get_variable(name)
        if var is None:
            raise KeyError(f"Metric '{name}' is not registered")
        var.record_value(value)


# Global registry instance used throughout the application
live_variable_registry = LiveVariableRegistry()


def record_live_metric(metric_name: str, value: float) -> None:
    """Record ``value`` to the named metric, honoring the registry's strictness.

    In strict mode an unregistered metric raises ``KeyError``; otherwise the
    sample is dropped.
    """
    ctx = nullcontext() if live_variable_registry.strict else suppress(KeyError)
    with ctx:
        live_variable_registry.record_metric(metric_name, value)


# Timing helper for recording wall-clock time to a metric.
# Works as both a context manager and a decorator:
#   with record_time_live_variable("time.chunk.generate_ms"): ...
#   @record_time_live_variable("time.chunk.generate_ms")
@contextmanager
def record_time_live_variable(metric_name: str):
    """Record elapsed wall-clock time (ms) to the named metric.

    In strict mode (the default), raises ``KeyError`` if the metric is not
    registered. When the registry has ``strict`` set to ``False`` (e.g. in test
    fixtures that clear the registry between tests), unregistered metrics are
    silently skipped.
    """
    start = perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (perf_counter() - start) * 1000
        record_live_metric(metric_name, elapsed_ms)

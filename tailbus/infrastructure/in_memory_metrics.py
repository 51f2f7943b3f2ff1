"""In-memory metrics implementation.

Stores counters, gauges and timing summaries in process memory. This is the
default MetricsPort used by connections and channels.
"""

import time
from collections import defaultdict, deque
from contextlib import contextmanager
from typing import Any

from ..ports.metrics import MetricsPort

# Recent samples kept per summary for percentiles
MAX_SAMPLES = 1000


class MetricsSummary:
    """Summary statistics for a metric."""

    def __init__(self, max_samples: int = MAX_SAMPLES):
        self.count: int = 0
        self.total: float = 0.0
        self.min: float = float("inf")
        self.max: float = float("-inf")
        self.values: deque[float] = deque(maxlen=max_samples)

    def add(self, value: float) -> None:
        """Add a value to the summary."""
        self.count += 1
        self.total += value
        self.min = min(self.min, value)
        self.max = max(self.max, value)
        self.values.append(value)

    @property
    def average(self) -> float:
        """Calculate average value."""
        return self.total / self.count if self.count > 0 else 0.0

    def percentile(self, p: float) -> float:
        """Calculate percentile (0-100) over the retained samples."""
        if not self.values:
            return 0.0
        sorted_values = sorted(self.values)
        index = int((p / 100) * len(sorted_values))
        return sorted_values[min(index, len(sorted_values) - 1)]

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary format."""
        return {
            "count": self.count,
            "average": round(self.average, 2),
            "min": round(self.min, 2) if self.count > 0 else 0,
            "max": round(self.max, 2) if self.count > 0 else 0,
            "p50": round(self.percentile(50), 2),
            "p99": round(self.percentile(99), 2),
        }


class InMemoryMetrics(MetricsPort):
    """In-memory implementation of the MetricsPort."""

    def __init__(self):
        self._counters: dict[str, int] = defaultdict(int)
        self._gauges: dict[str, float] = {}
        self._summaries: dict[str, MetricsSummary] = defaultdict(MetricsSummary)
        self._start_time = time.time()

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a counter metric."""
        self._counters[name] += value

    def gauge(self, name: str, value: float) -> None:
        """Set a gauge metric."""
        self._gauges[name] = value

    def record(self, name: str, value: float) -> None:
        """Record a value for summary statistics."""
        self._summaries[name].add(value)

    @contextmanager
    def timer(self, name: str):
        """Context manager for timing operations in milliseconds."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, (time.perf_counter() - start) * 1000)

    def get_all(self) -> dict[str, Any]:
        """Get all metrics as a dictionary."""
        return {
            "uptime_seconds": round(time.time() - self._start_time, 2),
            "counters": dict(self._counters),
            "gauges": dict(self._gauges),
            "summaries": {name: summary.to_dict() for name, summary in self._summaries.items()},
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._counters.clear()
        self._gauges.clear()
        self._summaries.clear()

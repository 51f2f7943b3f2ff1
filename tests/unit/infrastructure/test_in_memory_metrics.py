"""Tests for the in-memory metrics implementation."""

from unittest.mock import patch

from tailbus.infrastructure.in_memory_metrics import MAX_SAMPLES, InMemoryMetrics, MetricsSummary
from tailbus.ports.metrics import MetricsPort


class TestInMemoryMetrics:
    """Test cases for InMemoryMetrics implementation."""

    def test_implements_metrics_port(self):
        """Test that InMemoryMetrics properly implements MetricsPort."""
        assert isinstance(InMemoryMetrics(), MetricsPort)

    def test_increment_counter(self):
        """Test incrementing counter metrics."""
        metrics = InMemoryMetrics()
        assert metrics.get_all()["counters"] == {}

        metrics.increment("channel.orders.published")
        metrics.increment("channel.orders.published", 4)

        assert metrics.get_all()["counters"]["channel.orders.published"] == 5

    def test_gauge_overwrites(self):
        """Test that gauges keep the last value."""
        metrics = InMemoryMetrics()

        metrics.gauge("channels.open", 3)
        metrics.gauge("channels.open", 1)

        assert metrics.get_all()["gauges"]["channels.open"] == 1

    def test_timer_records_milliseconds(self):
        """Test that the timer records the elapsed time in milliseconds."""
        metrics = InMemoryMetrics()

        with patch("time.perf_counter", side_effect=[1.0, 1.25]):
            with metrics.timer("channel.orders.publish"):
                pass

        summary = metrics.get_all()["summaries"]["channel.orders.publish"]
        assert summary["count"] == 1
        assert summary["average"] == 250.0

    def test_timer_records_on_exception(self):
        """Test that failed operations are timed as well."""
        metrics = InMemoryMetrics()

        try:
            with metrics.timer("op"):
                raise ValueError("boom")
        except ValueError:
            pass

        assert metrics.get_all()["summaries"]["op"]["count"] == 1

    def test_reset(self):
        """Test that reset clears every metric."""
        metrics = InMemoryMetrics()
        metrics.increment("a")
        metrics.gauge("b", 1)
        metrics.record("c", 1.0)

        metrics.reset()

        all_metrics = metrics.get_all()
        assert all_metrics["counters"] == {}
        assert all_metrics["gauges"] == {}
        assert all_metrics["summaries"] == {}


class TestMetricsSummary:
    """Test cases for MetricsSummary."""

    def test_statistics(self):
        """Test summary statistics over recorded values."""
        summary = MetricsSummary()
        for value in range(1, 101):
            summary.add(float(value))

        result = summary.to_dict()
        assert result["count"] == 100
        assert result["average"] == 50.5
        assert result["min"] == 1.0
        assert result["max"] == 100.0
        assert result["p50"] == 51.0
        assert result["p99"] == 100.0

    def test_empty_summary(self):
        """Test that an empty summary reports zeros."""
        assert MetricsSummary().to_dict() == {
            "count": 0,
            "average": 0.0,
            "min": 0,
            "max": 0,
            "p50": 0.0,
            "p99": 0.0,
        }

    def test_keeps_a_bounded_window_of_samples(self):
        """Test that percentiles use recent samples while totals cover all."""
        summary = MetricsSummary(max_samples=10)
        for value in range(1, 101):
            summary.add(float(value))

        result = summary.to_dict()
        assert len(summary.values) == 10
        assert result["count"] == 100
        assert result["average"] == 50.5
        assert result["min"] == 1.0
        assert result["p50"] == 96.0

    def test_repeated_timings_do_not_grow_without_limit(self):
        """Test that a long-lived timer retains at most the default window."""
        metrics = InMemoryMetrics()
        for _ in range(MAX_SAMPLES + 500):
            with metrics.timer("channel.grow.publish"):
                pass

        assert len(metrics._summaries["channel.grow.publish"].values) == MAX_SAMPLES
        assert metrics.get_all()["summaries"]["channel.grow.publish"]["count"] == MAX_SAMPLES + 500

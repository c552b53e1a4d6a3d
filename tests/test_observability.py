"""Tests for structured logging and metrics."""

import io
import json


class TestStructuredLogger:
    """Tests for the structured logger."""

    def test_json_output_includes_context(self):
        from sparkvibe.observability.logging import LogLevel, StructuredLogger, request_context

        stream = io.StringIO()
        logger = StructuredLogger("test", level=LogLevel.DEBUG, json_output=True, stream=stream)

        with request_context(request_id="req-1"):
            logger.info("API Response", status=200)
        logger.info("outside")

        first, second = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert first["request_id"] == "req-1"
        assert first["status"] == 200
        assert "request_id" not in second

    def test_level_filtering(self):
        from sparkvibe.observability.logging import LogLevel, StructuredLogger

        stream = io.StringIO()
        logger = StructuredLogger(level=LogLevel.WARNING, stream=stream)

        logger.info("hidden")
        logger.warning("shown")

        assert stream.getvalue().strip() == "WARNING | shown"

    def test_exception_details_and_handlers(self):
        from sparkvibe.observability.logging import StructuredLogger

        events = []
        logger = StructuredLogger(stream=io.StringIO())
        logger.add_handler(events.append)

        try:
            raise ValueError("bad")
        except ValueError as e:
            logger.error("failed", exception=e)

        assert events[0].error_type == "ValueError"
        assert "ValueError" in events[0].stack_trace


class TestMetrics:
    """Tests for the metrics registry."""

    def test_counter_and_gauge(self):
        from sparkvibe.observability.metrics import MetricsRegistry

        registry = MetricsRegistry()
        requests = registry.counter("requests", "Requests", ["method"])
        depth = registry.gauge("depth", "Queue depth")

        requests.inc(labels={"method": "GET"})
        requests.inc(labels={"method": "GET"})
        requests.inc(labels={"method": "POST"})
        depth.inc()
        depth.inc()
        depth.dec()

        assert requests.get({"method": "GET"}) == 2
        assert requests.total() == 3
        assert depth.get() == 1
        assert registry.counter("requests", "Requests") is requests

    def test_histogram_stats(self):
        from sparkvibe.observability.metrics import Histogram

        histogram = Histogram("latency", "Latency", ["method"])
        for value in (0.1, 0.2, 0.3):
            histogram.observe(value, {"method": "GET"})
        with histogram.time({"method": "POST"}) as timer:
            pass

        stats = histogram.get_stats({"method": "GET"})
        assert stats["count"] == 3
        assert stats["p50"] == 0.2
        assert histogram.get_stats()["count"] == 4
        assert histogram.get_stats({"method": "POST"})["sum"] == timer.duration

    def test_prometheus_export(self):
        from sparkvibe.observability.metrics import ClientMetrics

        metrics = ClientMetrics()
        metrics.fallbacks.inc(labels={"operation": "leaderboard"})
        metrics.latency.observe(0.5, {"method": "GET"})

        text = metrics.registry.export_prometheus()

        assert "# TYPE sparkvibe_fallbacks_total counter" in text
        assert 'sparkvibe_fallbacks_total{operation="leaderboard"} 1' in text
        assert "sparkvibe_request_duration_seconds_count 1" in text

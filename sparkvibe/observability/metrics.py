"""Metrics collection with Prometheus-compatible implementation."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]


@dataclass
class MetricValue:
    """Container for metric values with labels."""

    value: float
    labels: Dict[str, str] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


def _make_key(labels: Optional[Dict[str, str]]) -> LabelKey:
    """Create key from labels."""
    return tuple(sorted((k, str(v)) for k, v in (labels or {}).items()))


def _format_labels(labels: Dict[str, str]) -> str:
    if not labels:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in labels.items()) + "}"


class Counter:
    """
    Counter metric that can only increase.

    Useful for counting requests, fallbacks, cache hits.
    """

    kind = "counter"

    def __init__(self, name: str, description: str, label_names: Optional[List[str]] = None):
        self.name = name
        self.description = description
        self.label_names = label_names or []
        self._values: Dict[LabelKey, float] = {}
        self._lock = threading.Lock()

    def inc(self, value: float = 1, labels: Optional[Dict[str, str]] = None):
        """Increment the counter."""
        key = _make_key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + value

    def get(self, labels: Optional[Dict[str, str]] = None) -> float:
        """Get current value."""
        return self._values.get(_make_key(labels), 0)

    def total(self) -> float:
        """Sum across all label sets."""
        with self._lock:
            return sum(self._values.values())

    def collect(self) -> List[MetricValue]:
        """Collect all metric values."""
        with self._lock:
            return [MetricValue(value=v, labels=dict(k)) for k, v in self._values.items()]


class Gauge(Counter):
    """
    Gauge metric that can go up and down.

    Useful for current values like queue depth.
    """

    kind = "gauge"

    def set(self, value: float, labels: Optional[Dict[str, str]] = None):
        """Set gauge value."""
        with self._lock:
            self._values[_make_key(labels)] = value

    def dec(self, value: float = 1, labels: Optional[Dict[str, str]] = None):
        """Decrement gauge."""
        self.inc(-value, labels)


class Histogram:
    """
    Histogram metric for measuring distributions.

    Useful for request latencies.
    """

    kind = "histogram"

    def __init__(self, name: str, description: str, label_names: Optional[List[str]] = None):
        self.name = name
        self.description = description
        self.label_names = label_names or []
        self._observations: Dict[LabelKey, List[float]] = {}
        self._lock = threading.Lock()

    def observe(self, value: float, labels: Optional[Dict[str, str]] = None):
        """Record an observation."""
        key = _make_key(labels)
        with self._lock:
            self._observations.setdefault(key, []).append(value)

    def time(self, labels: Optional[Dict[str, str]] = None) -> "HistogramTimer":
        """Context manager to time operations."""
        return HistogramTimer(self, labels)

    def get_stats(self, labels: Optional[Dict[str, str]] = None) -> Dict[str, float]:
        """Get histogram statistics for one label set, or all when labels is None."""
        with self._lock:
            if labels is None:
                observations = [v for values in self._observations.values() for v in values]
            else:
                observations = list(self._observations.get(_make_key(labels), []))

        if not observations:
            return {"count": 0, "sum": 0, "avg": 0, "min": 0, "max": 0}

        return {
            "count": len(observations),
            "sum": sum(observations),
            "avg": sum(observations) / len(observations),
            "min": min(observations),
            "max": max(observations),
            "p50": self._percentile(observations, 50),
            "p95": self._percentile(observations, 95),
        }

    @staticmethod
    def _percentile(data: List[float], p: float) -> float:
        """Calculate percentile."""
        sorted_data = sorted(data)
        k = (len(sorted_data) - 1) * p / 100
        f = int(k)
        c = f + 1 if f + 1 < len(sorted_data) else f
        return sorted_data[f] + (k - f) * (sorted_data[c] - sorted_data[f])


class HistogramTimer:
    """Context manager for timing histogram observations."""

    def __init__(self, histogram: Histogram, labels: Optional[Dict[str, str]] = None):
        self.histogram = histogram
        self.labels = labels
        self.start_time = 0.0
        self.duration = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time
        self.histogram.observe(self.duration, self.labels)


class MetricsRegistry:
    """
    Registry for a set of metrics.

    Each API client owns one, so separate clients never share counters.
    """

    def __init__(self):
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, cls, name: str, description: str, label_names: Optional[List[str]]):
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = cls(name, description, label_names)
            return self._metrics[name]

    def counter(self, name: str, description: str, label_names: Optional[List[str]] = None) -> Counter:
        """Create or get a counter metric."""
        return self._get_or_create(Counter, name, description, label_names)

    def gauge(self, name: str, description: str, label_names: Optional[List[str]] = None) -> Gauge:
        """Create or get a gauge metric."""
        return self._get_or_create(Gauge, name, description, label_names)

    def histogram(self, name: str, description: str, label_names: Optional[List[str]] = None) -> Histogram:
        """Create or get a histogram metric."""
        return self._get_or_create(Histogram, name, description, label_names)

    def get(self, name: str) -> Optional[Any]:
        return self._metrics.get(name)

    def collect_all(self) -> Dict[str, Any]:
        """Collect all metrics."""
        result = {}

        with self._lock:
            metrics = list(self._metrics.items())

        for name, metric in metrics:
            if isinstance(metric, Histogram):
                result[name] = {"type": metric.kind, "stats": metric.get_stats()}
            else:
                result[name] = {"type": metric.kind, "values": metric.collect()}

        return result

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        with self._lock:
            metrics = list(self._metrics.items())

        for name, metric in metrics:
            lines.append(f"# HELP {name} {metric.description}")
            lines.append(f"# TYPE {name} {metric.kind}")

            if isinstance(metric, Histogram):
                stats = metric.get_stats()
                lines.append(f"{name}_count {stats['count']}")
                lines.append(f"{name}_sum {stats['sum']}")
            else:
                for mv in metric.collect():
                    lines.append(f"{name}{_format_labels(mv.labels)} {mv.value}")

        return "\n".join(lines)


class ClientMetrics:
    """The metrics an API client records."""

    def __init__(self, registry: Optional[MetricsRegistry] = None):
        self.registry = registry or MetricsRegistry()

        self.requests = self.registry.counter(
            "sparkvibe_requests_total",
            "Backend requests by method and outcome",
            ["method", "outcome"],
        )
        self.fallbacks = self.registry.counter(
            "sparkvibe_fallbacks_total",
            "Synthesized responses by operation",
            ["operation"],
        )
        self.queue_depth = self.registry.gauge(
            "sparkvibe_queue_depth",
            "Requests waiting in the rate-limited queue",
        )
        self.latency = self.registry.histogram(
            "sparkvibe_request_duration_seconds",
            "Backend round-trip latency in seconds",
            ["method"],
        )

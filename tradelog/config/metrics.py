"""
Tradelog Metrics Collection

In-process counters, gauges and timing histograms for analysis runs and
exit mutations. A host application can poll snapshot() or expose
to_prometheus() on its own endpoint; tradelog never serves metrics itself.
"""

import time
from collections import defaultdict, deque
from functools import wraps
from threading import Lock
from typing import Any, Callable, Deque, Dict, Optional, Tuple, TypeVar

import numpy as np

T = TypeVar("T")

Labels = Optional[Dict[str, str]]
MetricKey = Tuple[str, Tuple[Tuple[str, str], ...]]

_EMPTY_SUMMARY = {"count": 0, "sum": 0.0, "min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}


def _key(name: str, labels: Labels) -> MetricKey:
    return name, tuple(sorted((labels or {}).items()))


def _render(key: MetricKey) -> str:
    name, labels = key
    if not labels:
        return name
    return name + "{" + ",".join(f'{k}="{v}"' for k, v in labels) + "}"


class MetricsCollector:
    """
    Thread-safe store of labelled metrics.

    Histograms keep the most recent max_samples observations per series.
    """

    def __init__(self, max_samples: int = 10000):
        self._lock = Lock()
        self._max_samples = max_samples
        self._counters: Dict[MetricKey, float] = defaultdict(float)
        self._gauges: Dict[MetricKey, float] = {}
        self._histograms: Dict[MetricKey, Deque[float]] = {}

    def increment_counter(self, name: str, value: float = 1.0, labels: Labels = None) -> None:
        with self._lock:
            self._counters[_key(name, labels)] += value

    def get_counter(self, name: str, labels: Labels = None) -> float:
        with self._lock:
            return self._counters.get(_key(name, labels), 0.0)

    def set_gauge(self, name: str, value: float, labels: Labels = None) -> None:
        with self._lock:
            self._gauges[_key(name, labels)] = float(value)

    def get_gauge(self, name: str, labels: Labels = None) -> float:
        with self._lock:
            return self._gauges.get(_key(name, labels), 0.0)

    def observe_histogram(self, name: str, value: float, labels: Labels = None) -> None:
        key = _key(name, labels)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = deque(maxlen=self._max_samples)
            self._histograms[key].append(value)

    def get_histogram_stats(self, name: str, labels: Labels = None) -> Dict[str, float]:
        """count, sum, min, max, avg, p50 and p95 of the retained samples."""
        with self._lock:
            samples = list(self._histograms.get(_key(name, labels), ()))
        return self._summarize(samples)

    @staticmethod
    def _summarize(samples) -> Dict[str, float]:
        if not samples:
            return dict(_EMPTY_SUMMARY)
        values = np.asarray(samples, dtype=float)
        p50, p95 = np.percentile(values, [50, 95])
        return {
            "count": int(values.size),
            "sum": float(values.sum()),
            "min": float(values.min()),
            "max": float(values.max()),
            "avg": float(values.mean()),
            "p50": float(p50),
            "p95": float(p95),
        }

    def snapshot(self) -> Dict[str, Any]:
        """All series keyed by their rendered name."""
        with self._lock:
            counters = {_render(k): v for k, v in self._counters.items()}
            gauges = {_render(k): v for k, v in self._gauges.items()}
            histograms = {_render(k): list(v) for k, v in self._histograms.items()}
        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": {k: self._summarize(v) for k, v in histograms.items()},
        }

    def to_prometheus(self) -> str:
        """Prometheus text exposition; histograms are exported as summaries."""
        snap = self.snapshot()
        lines = []
        typed = set()

        def declare(series: str, kind: str) -> None:
            name = series.split("{")[0]
            if name not in typed:
                typed.add(name)
                lines.append(f"# TYPE {name} {kind}")

        for series, value in snap["counters"].items():
            declare(series, "counter")
            lines.append(f"{series} {value}")
        for series, value in snap["gauges"].items():
            declare(series, "gauge")
            lines.append(f"{series} {value}")
        for series, stats in snap["histograms"].items():
            declare(series, "summary")
            name, _, labels = series.partition("{")
            suffix = "{" + labels if labels else ""
            lines.append(f"{name}_count{suffix} {stats['count']}")
            lines.append(f"{name}_sum{suffix} {stats['sum']}")
        return "\n".join(lines)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()


_metrics = MetricsCollector()


def get_metrics() -> MetricsCollector:
    """Process-wide collector used by the analytics modules."""
    return _metrics


def measure_time(metric_name: str, labels: Labels = None) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Observe the wall time of each call, in milliseconds, including failed calls."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed = (time.perf_counter() - started) * 1000
                get_metrics().observe_histogram(metric_name, elapsed, labels)

        return wrapper

    return decorator


class MetricNames:
    """Metric names emitted by tradelog."""

    ANALYSIS_RUNS_TOTAL = "tradelog_analysis_runs_total"
    ANALYSIS_DURATION_MS = "tradelog_analysis_duration_ms"
    TRADES_ANALYZED_TOTAL = "tradelog_trades_analyzed_total"
    MALFORMED_TRADES_TOTAL = "tradelog_malformed_trades_total"
    EXITS_ACCEPTED_TOTAL = "tradelog_exits_accepted_total"
    EXITS_REJECTED_TOTAL = "tradelog_exits_rejected_total"
    MAX_DRAWDOWN_PERCENT = "tradelog_max_drawdown_percent"

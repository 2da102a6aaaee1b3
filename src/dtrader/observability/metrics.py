"""
Prometheus metrics for observability.

Provides metrics for event dispatch and process lifecycle.

Usage:
    from dtrader.observability.metrics import MetricsDispatchObserver

    bus = InMemoryEventBus(sink, observers=[MetricsDispatchObserver()])

    # Record a finished shutdown
    record_shutdown(reason="terminal:exit", exit_code=0, duration_seconds=0.01)
"""

from __future__ import annotations

import time
from typing import Any

from prometheus_client import Counter, Gauge, Histogram

from dtrader.domain.events import EventKind

# =============================================================================
# Metric Definitions
# =============================================================================

events_published_total = Counter(
    "dtrader_events_published_total",
    "Total number of events published on the bus",
    ["kind"],
)

listener_failures_total = Counter(
    "dtrader_listener_failures_total",
    "Total number of listener invocations that raised",
    ["kind"],
)

dispatch_fanout = Gauge(
    "dtrader_dispatch_fanout",
    "Listeners reached by the most recent dispatch of each kind",
    ["kind"],
)

dispatch_duration_seconds = Histogram(
    "dtrader_dispatch_duration_seconds",
    "Time spent delivering one event to all of its listeners",
    ["kind"],
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

shutdowns_total = Counter(
    "dtrader_shutdowns_total",
    "Completed shutdown sequences",
    ["reason", "exit_code"],
)

shutdown_duration_seconds = Histogram(
    "dtrader_shutdown_duration_seconds",
    "Duration of the shutdown sequence (excluding the grace delay)",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)


# =============================================================================
# Helper Functions
# =============================================================================


class MetricsDispatchObserver:
    """DispatchObserver feeding the dispatch metrics."""

    def __init__(self) -> None:
        # Stack, because a listener may publish while its own dispatch is in flight
        self._started: list[float] = []

    def before_dispatch(self, kind: EventKind, args: tuple[Any, ...], listener_count: int) -> None:
        events_published_total.labels(kind=kind.value).inc()
        dispatch_fanout.labels(kind=kind.value).set(listener_count)
        self._started.append(time.perf_counter())

    def after_dispatch(self, kind: EventKind, delivered: int, failures: int) -> None:
        if failures:
            listener_failures_total.labels(kind=kind.value).inc(failures)
        if self._started:
            dispatch_duration_seconds.labels(kind=kind.value).observe(time.perf_counter() - self._started.pop())


def record_shutdown(*, reason: str, exit_code: int, duration_seconds: float) -> None:
    """Record a completed shutdown sequence."""
    shutdowns_total.labels(reason=reason, exit_code=str(exit_code)).inc()
    shutdown_duration_seconds.observe(duration_seconds)

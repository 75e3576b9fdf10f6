"""
Local observability.

Spans and counters for debugging retrieval, without external telemetry.
"""

import secrets
import threading
import time
from contextlib import contextmanager
from typing import Dict, Any, Optional, Iterator

from notemind.core.logging import AsyncLogger


class LocalTracer:
    """
    Simple local tracing system.

    LocalTracer vs MetricsCollector:
    - LocalTracer: individual spans with duration and attributes, useful
      for "why is this query slow"
    - MetricsCollector: aggregated counters and gauges, no per-operation context

    Example:
    - metrics.increment("search.cache_hits")
    - tracer.span("semantic_search", {"top_k": 8})
    """

    def __init__(self, service_name: str = "notemind") -> None:
        self.service_name = service_name
        self.logger = AsyncLogger("tracing")

    @contextmanager
    def span(self, name: str, attributes: Optional[Dict[str, Any]] = None) -> Iterator[str]:
        """
        Creates a span to measure an operation; yields the span id.

        Usage:
        ```
        with tracer.span("vector_query", {"top_k": 16}):
            matches = await store.query(vector, 16)
        ```
        """
        span_id = secrets.token_hex(8)
        start = time.perf_counter()

        try:
            yield span_id
        finally:
            duration = time.perf_counter() - start
            self.logger.debug(
                f"Span completed: {name}",
                span_id=span_id,
                duration_ms=duration * 1000,
                **(attributes or {}),
            )


class MetricsCollector:
    """
    Local metrics collector.

    Only for internal monitoring, without export. Safe to update from
    worker threads and the event loop.
    """

    def __init__(self, namespace: Optional[str] = None) -> None:
        self.namespace = namespace
        self.metrics: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _key(self, name: str) -> str:
        return f"{self.namespace}.{name}" if self.namespace else name

    def increment(self, name: str, value: float = 1.0) -> None:
        """Increments counter."""
        key = self._key(name)
        with self._lock:
            self.metrics[key] = self.metrics.get(key, 0) + value

    def gauge(self, name: str, value: float) -> None:
        """Sets current value."""
        with self._lock:
            self.metrics[self._key(name)] = value

    def record(self, name: str, value: float) -> None:
        """Records a measurement (alias of gauge)."""
        self.gauge(name, value)

    def get(self, name: str, default: float = 0.0) -> float:
        with self._lock:
            return self.metrics.get(self._key(name), default)

    def get_metrics(self) -> Dict[str, float]:
        """Gets all metrics."""
        with self._lock:
            return self.metrics.copy()


# Global instances
tracer = LocalTracer()
metrics = MetricsCollector()

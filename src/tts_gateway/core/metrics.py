"""
Prometheus Metrics for tts-gateway.

Metrics collection is optional: when prometheus_client is not installed
every operation is a no-op and /metrics returns a short placeholder.

Metrics Exposed:
    tts_gateway_requests_total             - Requests by operation and outcome
    tts_gateway_synthesis_duration_seconds - Provider call latency
    tts_gateway_audio_bytes_total          - Bytes of audio written to the cache
    tts_gateway_cache_hits_total           - Create requests served from disk
    tts_gateway_cache_misses_total         - Create requests that hit the provider
    tts_gateway_capacity_rejections_total  - Creates refused by the capacity guard
    tts_gateway_cache_entries              - Entries currently stored

Usage:
    from tts_gateway.core.metrics import metrics

    metrics.record_request("create", "success")
    metrics.record_cache("hit")
    content, content_type = metrics.get_metrics_response()

Installation:
    pip install tts-gateway[metrics]
"""
from __future__ import annotations

from typing import Optional

try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Gauge,
        Histogram,
        generate_latest,
    )
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    Counter = None
    Histogram = None
    Gauge = None
    CollectorRegistry = None


class GatewayMetrics:
    """
    Metric collection for the gateway.

    A private CollectorRegistry keeps these metrics apart from anything
    else registered in the process, so tests can build fresh instances.
    """

    def __init__(self):
        self._enabled = PROMETHEUS_AVAILABLE
        self._registry: Optional["CollectorRegistry"] = None

        if self._enabled:
            self._setup_metrics()

    def _setup_metrics(self) -> None:
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tts_gateway_requests_total",
            "Total requests handled",
            ["operation", "status"],
            registry=self._registry,
        )
        self._synthesis_duration = Histogram(
            "tts_gateway_synthesis_duration_seconds",
            "Speech provider call duration in seconds",
            ["provider"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_gateway_audio_bytes_total",
            "Total audio bytes written to the cache",
            registry=self._registry,
        )
        self._cache_hits = Counter(
            "tts_gateway_cache_hits_total",
            "Create requests served from an existing file",
            registry=self._registry,
        )
        self._cache_misses = Counter(
            "tts_gateway_cache_misses_total",
            "Create requests that required synthesis",
            registry=self._registry,
        )
        self._capacity_rejections = Counter(
            "tts_gateway_capacity_rejections_total",
            "Create requests refused because the cache is full",
            registry=self._registry,
        )
        self._cache_entries = Gauge(
            "tts_gateway_cache_entries",
            "Audio files currently stored",
            registry=self._registry,
        )

    @property
    def enabled(self) -> bool:
        """Whether metrics collection is enabled."""
        return self._enabled

    def record_request(self, operation: str, status: str) -> None:
        """
        Record a handled request.

        Args:
            operation: "create", "fetch", "delete", "list" or "voices"
            status: "success" or an error code such as "NOT_FOUND"
        """
        if not self._enabled:
            return
        self._requests_total.labels(operation=operation, status=status).inc()

    def record_synthesis(self, provider: str, duration: float, audio_bytes: int = 0) -> None:
        """Record one completed provider call."""
        if not self._enabled:
            return
        self._synthesis_duration.labels(provider=provider).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_cache(self, result: str) -> None:
        """Record a cache "hit" or "miss" on the create path."""
        if not self._enabled:
            return
        if result == "hit":
            self._cache_hits.inc()
        else:
            self._cache_misses.inc()

    def record_capacity_rejection(self) -> None:
        if not self._enabled:
            return
        self._capacity_rejections.inc()

    def set_cache_entries(self, count: int) -> None:
        if not self._enabled:
            return
        self._cache_entries.set(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        if not self._enabled:
            return (
                b"# Metrics not available (prometheus_client not installed)\n",
                "text/plain; charset=utf-8",
            )

        return (generate_latest(self._registry), CONTENT_TYPE_LATEST)


# Process-wide instance used by the service and the /metrics route
metrics = GatewayMetrics()

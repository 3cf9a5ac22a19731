"""Metrics collection for the semantic search service.

Provides a thin convenience wrapper around ``prometheus_client`` so the
service consistently records HTTP, embedding, search, and failure metrics.

Design notes
- Metrics and labels are predeclared to avoid cardinality explosions
- A single registry is kept per service (can be injected if needed)
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection.

    Parameters
    - service_name: Logical name used for scoping/labels if desired
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.request_count = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status'],
            registry=self.registry
        )

        self.request_duration = Histogram(
            'http_request_duration_seconds',
            'HTTP request duration',
            ['method', 'endpoint'],
            registry=self.registry
        )

        self.embedding_requests = Counter(
            'search_embedding_requests_total',
            'Total query embedding generations',
            ['model_name'],
            registry=self.registry
        )

        self.embedding_duration = Histogram(
            'search_embedding_duration_seconds',
            'Query embedding generation duration',
            ['model_name'],
            registry=self.registry
        )

        self.search_requests = Counter(
            'search_requests_total',
            'Total completed search requests',
            ['mode'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'search_duration_seconds',
            'End-to-end search duration',
            ['mode'],
            registry=self.registry
        )

        self.search_failures = Counter(
            'search_failures_total',
            'Failed search requests by error kind',
            ['kind'],
            registry=self.registry
        )

    def record_http_request(
        self,
        method: str,
        endpoint: str,
        status: int,
        duration: float
    ) -> None:
        """Record HTTP request metrics.

        duration is expected in seconds to match Prometheus histogram units.
        """
        self.request_count.labels(method=method, endpoint=endpoint, status=status).inc()
        self.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def record_embedding(self, model_name: str, duration: float) -> None:
        """Record embedding generation metrics."""
        self.embedding_requests.labels(model_name=model_name).inc()
        self.embedding_duration.labels(model_name=model_name).observe(duration)

    def record_search(self, mode: str, duration: float) -> None:
        """Record a completed search."""
        self.search_requests.labels(mode=mode).inc()
        self.search_duration.labels(mode=mode).observe(duration)

    def record_search_failure(self, kind: str) -> None:
        """Record a failed search by error kind."""
        self.search_failures.labels(kind=kind).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


# Global metrics collector instance
_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create metrics collector for a service.

    Returns a process‑wide singleton to avoid duplicate collectors/labels.
    """
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector

"""
Shared metrics configuration for the eBill console.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry
from typing import Dict, Any, Optional
import threading


class MetricsCollector:
    """Centralized metrics collector for the console.

    Metrics are left unregistered unless a registry is supplied, so several
    collectors can coexist in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the console."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total backend HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "Backend HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        # Session metrics
        self._metrics["session_invalidations_total"] = Counter(
            "session_invalidations_total",
            "Sessions cleared after an authorization failure",
            ["status_code"],
            registry=self.registry
        )

        self._metrics["logins_total"] = Counter(
            "logins_total",
            "Login attempts",
            ["status"],
            registry=self.registry
        )

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_session_invalidation(self, status_code: int):
        self._metrics["session_invalidations_total"].labels(status_code=str(status_code)).inc()

    def record_login(self, status: str):
        self._metrics["logins_total"].labels(status=status).inc()

    def sample_value(self, metric_name: str, **labels) -> float:
        """Current value of a labelled counter (0.0 when never incremented)."""
        metric = self._metrics.get(metric_name)
        if metric is None:
            return 0.0
        with self._lock:
            for family in metric.collect():
                for sample in family.samples:
                    if sample.name.endswith("_total") and sample.labels == labels:
                        return sample.value
        return 0.0


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)

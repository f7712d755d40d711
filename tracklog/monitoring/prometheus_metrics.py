"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager
from prometheus_client import Counter, Histogram
from tracklog.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for all Prometheus metrics"""

    def __init__(self):
        if not ENABLE_PROMETHEUS:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # HTTP Request Metrics
        self.http_requests_total = Counter(
            'http_requests_total',
            'Total HTTP requests',
            ['method', 'endpoint', 'status']
        )

        self.http_request_duration_seconds = Histogram(
            'http_request_duration_seconds',
            'HTTP request latency',
            ['method', 'endpoint'],
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0]
        )

        # Error Metrics
        self.http_errors_total = Counter(
            'http_errors_total',
            'Total HTTP errors',
            ['method', 'endpoint', 'error_type']
        )

        # Log Entry Metrics
        self.log_entries_created_total = Counter(
            'log_entries_created_total',
            'Total log entries created',
            ['kind']
        )

        self.linked_logs_skipped_total = Counter(
            'linked_logs_skipped_total',
            'Linked log entries not created',
            ['reason']
        )

        self.schema_enum_values_added_total = Counter(
            'schema_enum_values_added_total',
            'Enum values appended to tracker schemas by submissions'
        )

        self.entry_validation_failures_total = Counter(
            'entry_validation_failures_total',
            'Log entry submissions rejected by schema validation'
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


@contextmanager
def track_request(method: str, endpoint: str):
    """Track HTTP request metrics"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()
    status_code = 500  # Default to error

    try:
        yield
        status_code = 200  # Success if no exception
    except Exception as e:
        # Record error
        metrics.http_errors_total.labels(
            method=method,
            endpoint=endpoint,
            error_type=type(e).__name__
        ).inc()
        raise
    finally:
        duration = time.time() - start_time
        metrics.http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

        metrics.http_requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=status_code
        ).inc()


def track_log_entry_created(kind: str) -> None:
    """Count a created entry ("primary" or "linked")"""
    if not metrics.enabled:
        return
    metrics.log_entries_created_total.labels(kind=kind).inc()


def track_linked_log_skipped(reason: str) -> None:
    """Count a linked log that was not created"""
    if not metrics.enabled:
        return
    metrics.linked_logs_skipped_total.labels(reason=reason).inc()


def track_enum_values_added(count: int) -> None:
    """Count enum values appended to a schema"""
    if not metrics.enabled or count <= 0:
        return
    metrics.schema_enum_values_added_total.inc(count)


def track_validation_failure() -> None:
    """Count a rejected submission"""
    if not metrics.enabled:
        return
    metrics.entry_validation_failures_total.inc()

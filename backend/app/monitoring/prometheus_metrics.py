"""
Prometheus metrics module for the Kalm backend.

Service timings come from ``@BaseService.measure_operation``; the
provisioning pipeline adds outcome counters so partial failures after the
session write (degraded rooms, unmatched calendar slots) stay visible.
"""

from threading import Lock
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so test runs and reloads don't collide with the default one
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "kalm_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

service_operations_total = Counter(
    "kalm_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "kalm_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

provisioning_outcomes_total = Counter(
    "kalm_provisioning_outcomes_total",
    "Provisioning pipeline results by entry point",
    ["entry_point", "outcome"],  # entry_point: notification | direct
    registry=REGISTRY,
)

availability_updates_total = Counter(
    "kalm_availability_updates_total",
    "Availability reconciliation results after a session was recorded",
    ["outcome"],
    registry=REGISTRY,
)

room_provisioning_failures_total = Counter(
    "kalm_room_provisioning_failures_total",
    "Video room creation failures",
    ["entry_point", "fatal"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    _lock: Lock = Lock()

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Record one ``@measure_operation`` sample."""
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_provisioning_outcome(entry_point: str, outcome: str) -> None:
        provisioning_outcomes_total.labels(entry_point=entry_point, outcome=outcome).inc()

    @staticmethod
    def record_availability_update(outcome: str) -> None:
        availability_updates_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_room_failure(entry_point: str, fatal: bool) -> None:
        room_provisioning_failures_total.labels(
            entry_point=entry_point, fatal="true" if fatal else "false"
        ).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        with PrometheusMetrics._lock:
            return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()

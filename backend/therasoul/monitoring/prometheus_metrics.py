"""
Prometheus metrics module for TheraSoul.

This module provides Prometheus-compatible metrics by leveraging existing
@measure_operation performance data, plus counters for the session
lifecycle (transitions, slot locks, notification dispatch).
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "therasoul_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "therasoul_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "therasoul_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

session_transitions_total = Counter(
    "therasoul_session_transitions_total",
    "Session status transitions applied",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

slot_lock_total = Counter(
    "therasoul_slot_lock_total",
    "Slot lock operations by outcome",
    ["action", "outcome"],
    registry=REGISTRY,
)

notifications_dispatch_total = Counter(
    "therasoul_notifications_dispatch_total",
    "Lifecycle notifications dispatched by outcome",
    ["event_type", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'SessionLifecycleService')
            operation: Operation/method name (e.g., 'create_session')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()

        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_session_transition(from_status: str, to_status: str) -> None:
        session_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_slot_lock(action: str, outcome: str) -> None:
        slot_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_notification(event_type: str, status: str) -> None:
        notifications_dispatch_total.labels(event_type=event_type, status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()

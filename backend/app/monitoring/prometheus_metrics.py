"""
Prometheus metrics module for the coaching platform.

Service timings fed by @BaseService.measure_operation, plus domain counters
for the scheduler (created/skipped occurrences), the booking state machine
(transitions), the scheduling/capacity locks (wait time, Redis outcomes) and
coach credit deductions.
"""

from typing import Optional, cast

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
    "coachbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "coachbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "coachbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

schedule_occurrences_total = Counter(
    "coachbook_schedule_occurrences_total",
    "Recurring session occurrences processed, by outcome",
    ["outcome"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "coachbook_booking_transitions_total",
    "Booking state transitions",
    ["transition"],
    registry=REGISTRY,
)

lock_wait_seconds = Histogram(
    "coachbook_lock_wait_seconds",
    "Time spent waiting for scheduling/capacity locks",
    ["kind"],
    registry=REGISTRY,
    buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
)

lock_acquisitions_total = Counter(
    "coachbook_lock_acquisitions_total",
    "Distributed lock outcomes, by lock kind",
    ["kind", "outcome"],
    registry=REGISTRY,
)

credit_deductions_total = Counter(
    "coachbook_credit_deductions_total",
    "Daily credit deductions applied to coach balances",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records service timings and domain counters into REGISTRY."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record one call measured by @BaseService.measure_operation.

        Args:
            service: Service class name (e.g. 'SessionScheduler')
            operation: Operation name (e.g. 'create_sessions')
            duration: Wall time in seconds
            status: 'success' or 'error'
            error_type: Exception class name when status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_schedule_occurrence(outcome: str) -> None:
        """Count one processed occurrence ('created' or 'skipped')."""
        schedule_occurrences_total.labels(outcome=outcome).inc()

    @staticmethod
    def record_booking_transition(transition: str) -> None:
        """Count one booking transition (requested, approved, rejected, cancelled)."""
        booking_transitions_total.labels(transition=transition).inc()

    @staticmethod
    def record_lock_wait(kind: str, waited: float) -> None:
        lock_wait_seconds.labels(kind=kind).observe(max(waited, 0.0))

    @staticmethod
    def record_lock_event(kind: str, outcome: str) -> None:
        """Count one lock outcome (acquired, timeout, redis_error, expired)."""
        lock_acquisitions_total.labels(kind=kind, outcome=outcome).inc()

    @staticmethod
    def record_credit_deductions(count: int) -> None:
        if count > 0:
            credit_deductions_total.inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Render REGISTRY in the Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()

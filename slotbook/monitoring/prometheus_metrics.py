"""
Prometheus metrics module for the slot-booking core.

Service timings come from the @measure_operation decorator; the domain
counters track booking transitions, lost slot races, payment
verifications and sweeper purges.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so repeated imports in tests don't collide with the default one
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "slotbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "slotbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "slotbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "slotbook_booking_transitions_total",
    "Booking status transitions applied",
    ["to_status"],  # PENDING | CANCELLED | COMPLETED
    registry=REGISTRY,
)

slot_claim_conflicts_total = Counter(
    "slotbook_slot_claim_conflicts_total",
    "Booking attempts that lost the guarded slot update",
    registry=REGISTRY,
)

payment_verifications_total = Counter(
    "slotbook_payment_verifications_total",
    "Payment signature verifications by result",
    ["result"],  # verified | replayed | invalid_signature
    registry=REGISTRY,
)

expired_slots_purged_total = Counter(
    "slotbook_expired_slots_purged_total",
    "Slots removed by the expiry sweeper",
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
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
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

    # Domain helpers
    @staticmethod
    def inc_booking_transition(to_status: str) -> None:
        booking_transitions_total.labels(to_status=to_status).inc()

    @staticmethod
    def inc_slot_claim_conflict() -> None:
        slot_claim_conflicts_total.inc()

    @staticmethod
    def inc_payment_verification(result: str) -> None:
        payment_verifications_total.labels(result=result).inc()

    @staticmethod
    def inc_expired_slots_purged(count: int) -> None:
        if count > 0:
            expired_slots_purged_total.inc(count)

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics data in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        """Get the content type for Prometheus metrics."""
        return cast(str, CONTENT_TYPE_LATEST)


# Singleton instance
prometheus_metrics = PrometheusMetrics()

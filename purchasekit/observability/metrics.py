"""
Metrics Collection with Prometheus.

Exposes purchase-flow metrics; the integrator decides how to export them.
"""

from enum import Enum

from prometheus_client import Counter, Histogram, Info

from purchasekit.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    OUTCOME = "outcome"
    ENVIRONMENT = "environment"
    STATE = "state"
    ACTION = "action"
    SUCCESS = "success"
    ERROR_TYPE = "error_type"
    OPERATION = "operation"


class PurchaseMetrics:
    """
    Centralized metrics for purchasekit.

    Covers:
    - Receipt validations (outcome, duration, HTTP calls per endpoint)
    - Product metadata requests
    - Reconciled transactions
    - Errors by type
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        self.service_info = Info(
            "purchasekit",
            "Library information",
        )
        self.service_info.info(
            {
                "version": settings.version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # Receipt Validation Metrics
        # ====================================================================
        self.receipt_validations_total = Counter(
            "purchasekit_receipt_validations_total",
            "Total receipt validations by terminal outcome",
            [MetricLabels.OUTCOME, MetricLabels.ENVIRONMENT],
        )

        self.receipt_validation_duration_seconds = Histogram(
            "purchasekit_receipt_validation_duration_seconds",
            "Receipt validation duration in seconds, including sandbox fallback",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        )

        self.verification_requests_total = Counter(
            "purchasekit_verification_requests_total",
            "Total HTTP calls to the verification service",
            [MetricLabels.ENVIRONMENT, MetricLabels.SUCCESS],
        )

        # ====================================================================
        # Storefront Metrics
        # ====================================================================
        self.product_requests_total = Counter(
            "purchasekit_product_requests_total",
            "Total product metadata requests resolved",
            [MetricLabels.SUCCESS],
        )

        self.transactions_total = Counter(
            "purchasekit_transactions_total",
            "Total transactions handled by the reconciler",
            [MetricLabels.STATE, MetricLabels.ACTION],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "purchasekit_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_validation(self, outcome: str, environment: str | None, duration: float) -> None:
        """Record a terminal receipt validation outcome."""
        if not settings.metrics_enabled:
            return
        self.receipt_validations_total.labels(
            outcome=outcome, environment=environment or "none"
        ).inc()
        self.receipt_validation_duration_seconds.observe(duration)

    def record_verification_request(self, environment: str, success: bool) -> None:
        """Record one HTTP call to the verification service."""
        if not settings.metrics_enabled:
            return
        self.verification_requests_total.labels(
            environment=environment, success=str(success)
        ).inc()

    def record_product_request(self, success: bool) -> None:
        """Record a resolved product metadata request."""
        if not settings.metrics_enabled:
            return
        self.product_requests_total.labels(success=str(success)).inc()

    def record_transaction(self, state: str, action: str) -> None:
        """Record a transaction handled by the reconciler."""
        if not settings.metrics_enabled:
            return
        self.transactions_total.labels(state=state, action=action).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        if not settings.metrics_enabled:
            return
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = PurchaseMetrics()

"""Custom exceptions for the service level exporter."""

from typing import Any, Dict, Optional


class ServiceLevelError(Exception):
    """Base exception for service level measurement output."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MetricRegistrationError(ServiceLevelError):
    """Raised when the metrics registry rejects the SLO series."""

    def __init__(self, metric_name: str, reason: str, labels: Optional[Dict[str, str]] = None):
        super().__init__(
            f"Metric '{metric_name}' could not be registered: {reason}",
            {"metric_name": metric_name, "reason": reason, "labels": labels or {}},
        )
        self.metric_name = metric_name
        self.reason = reason


class OutputError(ServiceLevelError):
    """Raised when an output fails to process a measurement."""

    def __init__(self, output_name: str, cause: Exception):
        super().__init__(
            f"Output '{output_name}' failed: {cause}",
            {"output": output_name, "error_type": type(cause).__name__},
        )
        self.output_name = output_name
        self.cause = cause

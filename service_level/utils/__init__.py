"""Utility modules for the service level exporter."""

from service_level.utils.exceptions import (
    ServiceLevelError,
    MetricRegistrationError,
    OutputError,
)
from service_level.utils.logging import configure_logging
from service_level.utils.settings import OutputSettings

__all__ = [
    "ServiceLevelError",
    "MetricRegistrationError",
    "OutputError",
    "configure_logging",
    "OutputSettings",
]

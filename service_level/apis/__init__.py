"""Resource contracts consumed by the outputs."""

from service_level.apis.measure import (
    ObjectMeta,
    Output,
    PrometheusOutputSource,
    SLI,
    SLO,
    ServiceLevel,
)

__all__ = [
    "ObjectMeta",
    "Output",
    "PrometheusOutputSource",
    "SLI",
    "SLO",
    "ServiceLevel",
]

"""ServiceLevel and SLO resource contracts.

These mirror the custom resources handled by the reconciler. The output
engine only reads them; it never keeps references between measurements.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ObjectMeta(BaseModel):
    """Resource metadata."""

    name: str = Field(description="Resource name")
    namespace: str = Field(default="default", description="Resource namespace")


class PrometheusOutputSource(BaseModel):
    """Prometheus output options of an SLO."""

    labels: Dict[str, str] = Field(
        default_factory=dict, description="Extra static labels added to the SLO series"
    )


class Output(BaseModel):
    """Output declaration of an SLO."""

    prometheus: Optional[PrometheusOutputSource] = Field(default=None)


class SLI(BaseModel):
    """SLI source declaration.

    The SLI backends live outside this package, so the source is kept as an
    opaque mapping of backend name to its options.
    """

    model_config = ConfigDict(extra="allow")


class SLO(BaseModel):
    """Service level objective."""

    name: str = Field(description="SLO name")
    description: str = Field(default="", description="SLO description")
    availability_objective_percent: float = Field(
        ge=0.0, le=100.0, description="Availability objective, e.g. 99.9"
    )
    sli: Optional[SLI] = Field(default=None)
    output: Output = Field(default_factory=Output)

    @property
    def objective_ratio(self) -> float:
        return self.availability_objective_percent / 100

    @property
    def extra_labels(self) -> Dict[str, str]:
        if self.output.prometheus is None:
            return {}
        return dict(self.output.prometheus.labels)


class ServiceLevel(BaseModel):
    """A service and the SLOs defined for it."""

    metadata: ObjectMeta
    slos: List[SLO] = Field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

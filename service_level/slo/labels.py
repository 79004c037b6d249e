"""Label identity of the SLO series."""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

import structlog

from service_level.apis.measure import SLO, ServiceLevel

logger = structlog.get_logger(__name__)

NAMESPACE_LABEL = "namespace"
SERVICE_LEVEL_LABEL = "service_level"
SLO_LABEL = "slo"
REQUIRED_LABELS = (NAMESPACE_LABEL, SERVICE_LEVEL_LABEL, SLO_LABEL)


@dataclass(frozen=True)
class LabelKey:
    """Ordered label set selecting one series triple.

    The required labels always come first, in fixed order, followed by the
    extra labels sorted by name.
    """

    pairs: Tuple[Tuple[str, str], ...]

    @classmethod
    def build(
        cls,
        namespace: str,
        service_level: str,
        slo: str,
        extra_labels: Optional[Mapping[str, str]] = None,
    ) -> "LabelKey":
        pairs = [
            (NAMESPACE_LABEL, namespace),
            (SERVICE_LEVEL_LABEL, service_level),
            (SLO_LABEL, slo),
        ]
        for name in sorted(extra_labels or {}):
            if name in REQUIRED_LABELS:
                logger.warning(
                    "Ignoring extra label overriding a required label",
                    label=name,
                    service_level=service_level,
                    slo=slo,
                )
                continue
            pairs.append((name, str(extra_labels[name])))
        return cls(tuple(pairs))

    @classmethod
    def from_slo(cls, service_level: ServiceLevel, slo: SLO) -> "LabelKey":
        return cls.build(
            service_level.namespace,
            service_level.name,
            slo.name,
            slo.extra_labels,
        )

    @property
    def label_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.pairs)

    @property
    def label_values(self) -> Tuple[str, ...]:
        return tuple(value for _, value in self.pairs)

    def as_dict(self) -> Dict[str, str]:
        return dict(self.pairs)

    def __str__(self) -> str:
        return "{" + ",".join(f'{name}="{value}"' for name, value in self.pairs) + "}"

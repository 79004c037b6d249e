"""Prometheus collector holding the SLO series.

Every label key owns three series that are always created and removed
together::

    service_level_slo_error_ratio_total   sum of the per measurement error ratios
    service_level_slo_full_ratio_total    number of measurements
    service_level_slo_objective_ratio     availability objective as a ratio

The error ratio is accumulated instead of exported as a gauge so range
queries can compute the average error ratio of any window, e.g.
``increase(error_ratio_total[1h]) / increase(full_ratio_total[1h])``.

Label sets differ between SLOs (extra labels), so the series are not
modelled with ``Counter``/``Gauge`` children, which require fixed label
names. The collector keeps the values itself and renders metric families
on every scrape.
"""

import math
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from prometheus_client import CollectorRegistry
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily

from service_level.slo.labels import LabelKey
from service_level.utils.exceptions import MetricRegistrationError

ERROR_RATIO_METRIC = "service_level_slo_error_ratio_total"
FULL_RATIO_METRIC = "service_level_slo_full_ratio_total"
OBJECTIVE_RATIO_METRIC = "service_level_slo_objective_ratio"

_ERROR_RATIO_HELP = "Is the error ratio (0-1) of the SLO measurements, accumulated."
_FULL_RATIO_HELP = "Is the number of SLO measurements, accumulated; one per measurement."
_OBJECTIVE_RATIO_HELP = "Is the objective of the SLO as a ratio (0-1)."

_LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@dataclass
class SeriesTriple:
    """Current values of the three series of one label key."""

    error_ratio_total: float
    full_ratio_total: float
    objective_ratio: float


def _validate_label_names(key: LabelKey) -> None:
    for name in key.label_names:
        if not _LABEL_NAME_RE.match(name) or name.startswith("__"):
            raise MetricRegistrationError(
                ERROR_RATIO_METRIC, f"invalid label name '{name}'", key.as_dict()
            )


class SLOMetricsRegistry:
    """Owns the live SLO series and exposes them through a collector registry.

    Nothing here logs: the methods run inside the output's critical
    sections, so callers log once the locks are released.
    """

    def __init__(self, registry: CollectorRegistry):
        self.registry = registry
        self.before_collect: Optional[Callable[[], object]] = None
        self._series: Dict[LabelKey, SeriesTriple] = {}
        self._lock = threading.Lock()
        self._registered = False

    def upsert(
        self,
        key: LabelKey,
        delta_error_ratio: float,
        increment_full_count: float,
        objective_ratio: float,
    ) -> bool:
        """Add a measurement contribution to the series of ``key``.

        Missing series are created with the given values. Counters are
        incremented and the objective gauge is overwritten. Returns True when
        the series were created by this call.
        """
        values = (delta_error_ratio, increment_full_count, objective_ratio)
        if not all(math.isfinite(v) for v in values):
            raise ValueError("SLO series values must be finite.")
        if delta_error_ratio < 0 or increment_full_count < 0:
            raise ValueError("Counters can only be incremented by non-negative amounts.")
        _validate_label_names(key)

        with self._lock:
            self._ensure_registered()
            series = self._series.get(key)
            if series is None:
                self._series[key] = SeriesTriple(
                    error_ratio_total=delta_error_ratio,
                    full_ratio_total=increment_full_count,
                    objective_ratio=objective_ratio,
                )
                return True
            series.error_ratio_total += delta_error_ratio
            series.full_ratio_total += increment_full_count
            series.objective_ratio = objective_ratio
            return False

    def remove(self, key: LabelKey) -> bool:
        """Drop the series of ``key``; returns False if there were none."""
        with self._lock:
            return self._series.pop(key, None) is not None

    def get(self, key: LabelKey) -> Optional[SeriesTriple]:
        with self._lock:
            series = self._series.get(key)
            if series is None:
                return None
            return SeriesTriple(series.error_ratio_total, series.full_ratio_total, series.objective_ratio)

    def keys(self) -> List[LabelKey]:
        with self._lock:
            return list(self._series)

    def __len__(self) -> int:
        with self._lock:
            return len(self._series)

    def __contains__(self, key: LabelKey) -> bool:
        with self._lock:
            return key in self._series

    def unregister(self) -> None:
        """Stop exposing the series through the collector registry."""
        with self._lock:
            if not self._registered:
                return
            self.registry.unregister(self)
            self._registered = False

    def _ensure_registered(self) -> None:
        if self._registered:
            return
        try:
            self.registry.register(self)
        except ValueError as e:
            raise MetricRegistrationError(ERROR_RATIO_METRIC, str(e)) from e
        self._registered = True

    def describe(self) -> Iterator:
        # CounterMetricFamily drops the _total suffix from the family name.
        yield CounterMetricFamily(ERROR_RATIO_METRIC, _ERROR_RATIO_HELP)
        yield CounterMetricFamily(FULL_RATIO_METRIC, _FULL_RATIO_HELP)
        yield GaugeMetricFamily(OBJECTIVE_RATIO_METRIC, _OBJECTIVE_RATIO_HELP)

    def collect(self) -> Iterator:
        if self.before_collect is not None:
            self.before_collect()

        with self._lock:
            snapshot: List[Tuple[Dict[str, str], float, float, float]] = [
                (key.as_dict(), s.error_ratio_total, s.full_ratio_total, s.objective_ratio)
                for key, s in self._series.items()
            ]

        error_ratio = CounterMetricFamily(ERROR_RATIO_METRIC, _ERROR_RATIO_HELP)
        full_ratio = CounterMetricFamily(FULL_RATIO_METRIC, _FULL_RATIO_HELP)
        objective = GaugeMetricFamily(OBJECTIVE_RATIO_METRIC, _OBJECTIVE_RATIO_HELP)
        for labels, error_value, full_value, objective_value in snapshot:
            error_ratio.add_sample(ERROR_RATIO_METRIC, labels, error_value)
            full_ratio.add_sample(FULL_RATIO_METRIC, labels, full_value)
            objective.add_sample(OBJECTIVE_RATIO_METRIC, labels, objective_value)

        yield error_ratio
        yield full_ratio
        yield objective

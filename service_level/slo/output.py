"""SLO measurement outputs."""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional

import structlog
from prometheus_client import CollectorRegistry

from service_level.apis.measure import SLO, ServiceLevel
from service_level.sli.result import Result
from service_level.slo.expiry import ExpiryTracker
from service_level.slo.labels import LabelKey
from service_level.slo.registry import SLOMetricsRegistry
from service_level.utils.exceptions import MetricRegistrationError, OutputError
from service_level.utils.settings import OUTPUT_LOGGER, OUTPUT_PROMETHEUS, OutputSettings

logger = structlog.get_logger(__name__)


class Output(ABC):
    """Receives the SLI result of every SLO evaluation."""

    name = "output"

    @abstractmethod
    def create(self, service_level: ServiceLevel, slo: SLO, result: Result) -> None:
        """Process one measurement of ``slo``."""

    def close(self) -> None:
        """Release the resources held by the output."""


class PrometheusOutput(Output):
    """Exposes SLO measurements as Prometheus series.

    Each call is a distinct measurement: two identical calls add twice to
    the counters. Series that receive no measurement for
    ``settings.expire_duration`` seconds are removed.
    """

    name = OUTPUT_PROMETHEUS

    def __init__(
        self,
        settings: Optional[OutputSettings],
        registry: CollectorRegistry,
        clock: Optional[Callable[[], float]] = None,
        background: bool = True,
    ):
        self.settings = settings or OutputSettings()
        self.metrics = SLOMetricsRegistry(registry)
        self.tracker = ExpiryTracker(
            self.settings.expire_duration,
            on_expire=self.metrics.remove,
            after_expire=self._log_expired,
            clock=clock,
            background=background,
        )
        # Scrapes never serve a series past its deadline, even if the
        # scheduler thread has not woken up yet.
        self.metrics.before_collect = self.tracker.run_pending

    def create(self, service_level: ServiceLevel, slo: SLO, result: Result) -> None:
        key = LabelKey.from_slo(service_level, slo)
        delta_error_ratio = result.error_ratio()
        objective_ratio = slo.objective_ratio

        outcome = {}

        def apply():
            outcome["created"] = self.metrics.upsert(key, delta_error_ratio, 1, objective_ratio)

        try:
            self.tracker.touch(key, apply=apply)
        except MetricRegistrationError as e:
            logger.error("SLO series rejected by the registry", labels=key.as_dict(), error=e.reason)
            raise

        # Logged outside the tracker lock.
        if outcome["created"]:
            logger.info("SLO series created", labels=key.as_dict())

        logger.debug(
            "SLO measurement exported",
            labels=key.as_dict(),
            error_ratio=delta_error_ratio,
            objective_ratio=objective_ratio,
        )

    def close(self) -> None:
        self.tracker.close()
        self.metrics.unregister()

    def _log_expired(self, key: LabelKey) -> None:
        logger.info(
            "SLO series expired",
            labels=key.as_dict(),
            expire_duration=self.settings.expire_duration,
        )


class LoggerOutput(Output):
    """Logs every measurement; useful as a dry run of the Prometheus output."""

    name = OUTPUT_LOGGER

    def __init__(self, log=None):
        self.log = log or logger

    def create(self, service_level: ServiceLevel, slo: SLO, result: Result) -> None:
        self.log.info(
            "SLO measurement",
            namespace=service_level.namespace,
            service_level=service_level.name,
            slo=slo.name,
            total_queries=result.total_q,
            error_queries=result.error_q,
            error_ratio=result.error_ratio(),
            availability_ratio=result.availability_ratio(),
            objective_ratio=slo.objective_ratio,
        )


class MultiOutput(Output):
    """Sends every measurement to all the wrapped outputs.

    A failing output does not prevent the others from receiving the
    measurement; the first failure is raised once all have been called.
    """

    name = "multi"

    def __init__(self, *outputs: Output):
        self.outputs: List[Output] = list(outputs)

    def create(self, service_level: ServiceLevel, slo: SLO, result: Result) -> None:
        first_error: Optional[OutputError] = None
        for output in self.outputs:
            try:
                output.create(service_level, slo, result)
            except Exception as e:
                logger.error(
                    "Output failed to process SLO measurement",
                    output=output.name,
                    service_level=service_level.name,
                    slo=slo.name,
                    error=str(e),
                )
                if first_error is None:
                    first_error = OutputError(output.name, e)
        if first_error is not None:
            raise first_error from first_error.cause

    def close(self) -> None:
        for output in self.outputs:
            output.close()


def create_output(settings: OutputSettings, registry: CollectorRegistry) -> Output:
    """Build the outputs enabled in ``settings``."""
    outputs: List[Output] = []
    for kind in settings.outputs:
        if kind == OUTPUT_PROMETHEUS:
            outputs.append(PrometheusOutput(settings, registry))
        elif kind == OUTPUT_LOGGER:
            outputs.append(LoggerOutput())

    logger.info("SLO outputs created", outputs=settings.outputs, expire_duration=settings.expire_duration)
    if len(outputs) == 1:
        return outputs[0]
    return MultiOutput(*outputs)

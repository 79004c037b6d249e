"""Unit tests for the SLO metrics registry."""

import threading

import pytest
from prometheus_client import Gauge

from service_level.slo.labels import LabelKey
from service_level.slo.registry import (
    ERROR_RATIO_METRIC,
    FULL_RATIO_METRIC,
    OBJECTIVE_RATIO_METRIC,
    SLOMetricsRegistry,
)
from service_level.utils.exceptions import MetricRegistrationError
from tests._helpers.metrics import series

KEY = LabelKey.build("ns0", "sl0", "slo0")
OTHER_KEY = LabelKey.build("ns1", "sl1", "slo1", {"env": "prod"})
LABELS = {"namespace": "ns0", "service_level": "sl0", "slo": "slo0"}


@pytest.fixture
def metrics(registry):
    return SLOMetricsRegistry(registry)


class TestSLOMetricsRegistry:
    """Test series creation, update and removal."""

    def test_upsert_creates_triple(self, metrics, scrape):
        metrics.upsert(KEY, 0.25, 1, 0.999)

        samples = scrape()
        assert samples[series(ERROR_RATIO_METRIC, **LABELS)] == 0.25
        assert samples[series(FULL_RATIO_METRIC, **LABELS)] == 1
        assert samples[series(OBJECTIVE_RATIO_METRIC, **LABELS)] == 0.999

    def test_upsert_accumulates_counters_and_overwrites_gauge(self, metrics):
        metrics.upsert(KEY, 0.25, 1, 0.999)
        metrics.upsert(KEY, 0.5, 1, 0.99)

        result = metrics.get(KEY)

        assert result.error_ratio_total == pytest.approx(0.75)
        assert result.full_ratio_total == 2
        assert result.objective_ratio == 0.99

    def test_upsert_reports_creation(self, metrics):
        assert metrics.upsert(KEY, 0.25, 1, 0.999) is True
        assert metrics.upsert(KEY, 0.25, 1, 0.999) is False

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite_values_rejected(self, metrics, value):
        with pytest.raises(ValueError):
            metrics.upsert(KEY, value, 1, 0.9)
        with pytest.raises(ValueError):
            metrics.upsert(KEY, 0.1, 1, value)

        assert KEY not in metrics

    def test_negative_increment_rejected(self, metrics):
        with pytest.raises(ValueError):
            metrics.upsert(KEY, -0.1, 1, 0.9)

        assert KEY not in metrics

    def test_remove(self, metrics, scrape):
        metrics.upsert(KEY, 0.25, 1, 0.999)
        metrics.upsert(OTHER_KEY, 0.1, 1, 0.9)

        assert metrics.remove(KEY) is True

        samples = scrape()
        assert series(ERROR_RATIO_METRIC, **LABELS) not in samples
        assert series(FULL_RATIO_METRIC, **LABELS) not in samples
        assert series(OBJECTIVE_RATIO_METRIC, **LABELS) not in samples
        assert series(FULL_RATIO_METRIC, **OTHER_KEY.as_dict()) in samples

    def test_remove_unknown_key_is_noop(self, metrics):
        assert metrics.remove(KEY) is False

    def test_upsert_after_remove_starts_from_scratch(self, metrics):
        metrics.upsert(KEY, 0.25, 1, 0.999)
        metrics.remove(KEY)
        metrics.upsert(KEY, 0.5, 1, 0.999)

        assert metrics.get(KEY).full_ratio_total == 1
        assert metrics.get(KEY).error_ratio_total == 0.5

    def test_registers_lazily(self, metrics, registry, scrape):
        assert scrape() == {}

        metrics.upsert(KEY, 0.0, 1, 1.0)

        assert registry.get_sample_value(FULL_RATIO_METRIC, LABELS) == 1

    def test_registry_rejection(self, registry):
        Gauge(OBJECTIVE_RATIO_METRIC, "Conflicting metric", registry=registry)
        metrics = SLOMetricsRegistry(registry)

        with pytest.raises(MetricRegistrationError) as exc_info:
            metrics.upsert(KEY, 0.1, 1, 0.9)

        assert "Duplicated" in exc_info.value.reason
        assert len(metrics) == 0

    def test_invalid_label_name_rejected(self, metrics):
        key = LabelKey.build("ns", "sl", "slo", {"bad-name": "x"})

        with pytest.raises(MetricRegistrationError):
            metrics.upsert(key, 0.1, 1, 0.9)

        assert key not in metrics

    def test_unregister(self, metrics, scrape):
        metrics.upsert(KEY, 0.1, 1, 0.9)
        metrics.unregister()

        assert scrape() == {}

    def test_before_collect_hook_runs_on_scrape(self, metrics, scrape):
        metrics.upsert(KEY, 0.1, 1, 0.9)
        metrics.before_collect = lambda: metrics.remove(KEY)

        assert scrape() == {}

    def test_concurrent_upserts_are_not_lost(self, metrics):
        workers = 8
        per_worker = 250

        def work():
            for _ in range(per_worker):
                metrics.upsert(KEY, 0.5, 1, 0.9)

        threads = [threading.Thread(target=work) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        result = metrics.get(KEY)
        assert result.full_ratio_total == workers * per_worker
        assert result.error_ratio_total == pytest.approx(workers * per_worker * 0.5)

    def test_scrape_never_sees_partial_triple(self, metrics, registry):
        stop = threading.Event()

        def churn():
            while not stop.is_set():
                metrics.upsert(KEY, 0.1, 1, 0.9)
                metrics.remove(KEY)

        thread = threading.Thread(target=churn)
        thread.start()
        try:
            for _ in range(200):
                names = set()
                for family in registry.collect():
                    for sample in family.samples:
                        names.add(sample.name)
                assert len(names) in (0, 3)
        finally:
            stop.set()
            thread.join()

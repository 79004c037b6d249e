"""Shared fixtures for the SLO output tests."""

import pytest
from prometheus_client import CollectorRegistry

from service_level.apis.measure import (
    ObjectMeta,
    Output,
    PrometheusOutputSource,
    SLO,
    ServiceLevel,
)
from tests._helpers.metrics import FakeClock, scrape_registry


@pytest.fixture
def registry():
    """Fresh Prometheus registry."""
    return CollectorRegistry()


@pytest.fixture
def scrape(registry):
    """Scrape the fixture registry."""
    return lambda: scrape_registry(registry)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sl0():
    return ServiceLevel(metadata=ObjectMeta(name="sl0-test", namespace="ns0"))


@pytest.fixture
def sl1():
    return ServiceLevel(metadata=ObjectMeta(name="sl1-test", namespace="ns1"))


@pytest.fixture
def slo00():
    return SLO(
        name="slo00-test",
        availability_objective_percent=99.999,
        output=Output(prometheus=PrometheusOutputSource()),
    )


@pytest.fixture
def slo01():
    return SLO(
        name="slo01-test",
        availability_objective_percent=99.98,
        output=Output(prometheus=PrometheusOutputSource()),
    )


@pytest.fixture
def slo10():
    return SLO(
        name="slo10-test",
        availability_objective_percent=99.99978,
        output=Output(prometheus=PrometheusOutputSource()),
    )


@pytest.fixture
def slo11():
    return SLO(
        name="slo11-test",
        availability_objective_percent=95.9981,
        output=Output(
            prometheus=PrometheusOutputSource(labels={"env": "test", "team": "team1"})
        ),
    )

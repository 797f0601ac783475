"""Shared fixtures: fake clock, device list, mock client and polling parts."""
from __future__ import annotations

import pytest

from routermon.cache import ResponseCache
from routermon.config import AppConfig, DeviceConfig
from routermon.polling.aggregator import Aggregator
from routermon.polling.collectors import DeviceCollector
from routermon.polling.mock import MockRouterOSClient
from routermon.polling.pool import ConnectionPool
from routermon.polling.rates import RateEngine


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def devices() -> list[DeviceConfig]:
    """Three routers; tests take individual ones by index."""
    return [
        DeviceConfig(id=1, name="Core", ip="10.0.0.1", username="api", password="x"),
        DeviceConfig(id=2, name="Branch", ip="10.0.0.2", username="api", password="x"),
        DeviceConfig(id=3, name="Tower", ip="10.0.0.3", username="api", password="x"),
    ]


@pytest.fixture
def device(devices) -> DeviceConfig:
    return devices[0]


@pytest.fixture
def client(clock) -> MockRouterOSClient:
    return MockRouterOSClient(clock=clock)


@pytest.fixture
def pool(client, clock) -> ConnectionPool:
    return ConnectionPool(client, clock=clock)


@pytest.fixture
def cache(clock) -> ResponseCache:
    return ResponseCache(clock=clock)


@pytest.fixture
def rates(clock) -> RateEngine:
    return RateEngine(min_sample_interval=1.5, clock=clock)


@pytest.fixture
def collector(client, cache, rates) -> DeviceCollector:
    return DeviceCollector(client, cache, rates)


@pytest.fixture
def aggregator(devices, client, clock) -> Aggregator:
    return Aggregator.from_config(devices, AppConfig(), client, clock=clock)

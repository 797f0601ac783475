"""Device polling: connection pool, rate engine, collectors and aggregation."""

from .aggregator import Aggregator
from .collectors import DeviceCollector
from .mock import MockRouterOSClient
from .pool import ConnectionPool, PooledSession, SessionLease
from .rates import RateEngine, Rates, RateSample
from .routeros import (
    ConnectFailure,
    DeviceClient,
    QueryFailure,
    RouterOSClient,
    RouterOSError,
    RouterOSSession,
)
from .scheduler import PollingScheduler

__all__ = [
    "Aggregator",
    "DeviceCollector",
    "MockRouterOSClient",
    "ConnectionPool",
    "PooledSession",
    "SessionLease",
    "RateEngine",
    "Rates",
    "RateSample",
    "ConnectFailure",
    "DeviceClient",
    "QueryFailure",
    "RouterOSClient",
    "RouterOSError",
    "RouterOSSession",
    "PollingScheduler",
]

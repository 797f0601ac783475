"""
Data Aggregator

Fans device queries out concurrently and merges them into one record per
device. A device that is unreachable or fails a required query is reported
with its status and error message; it never affects the other devices.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from ..cache import CATEGORY_OVERVIEW, ResponseCache
from ..config import AppConfig, DeviceConfig
from ..models.device import (
    DeviceDetail,
    DeviceOverview,
    DeviceStatus,
    HealthReport,
    SessionCounts,
)
from ..models.traffic import BandwidthSummary, FleetBandwidth, QueueCounts, QueueSummary
from .collectors import DeviceCollector
from .pool import ConnectionPool
from .rates import RateEngine
from .routeros import DeviceClient, RouterOSError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Aggregator:
    """Owns the pool, cache and rate engine for one fleet of devices."""

    def __init__(
        self,
        devices: list[DeviceConfig],
        pool: ConnectionPool,
        cache: ResponseCache,
        collector: DeviceCollector,
    ) -> None:
        self._devices = list(devices)
        self._by_id = {device.id: device for device in self._devices}
        self._pool = pool
        self._cache = cache
        self._collector = collector

    @classmethod
    def from_config(
        cls,
        devices: list[DeviceConfig],
        config: AppConfig,
        client: DeviceClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> "Aggregator":
        """Build the pool, cache, rate engine and collector from configuration."""
        pool = ConnectionPool(
            client,
            idle_window=config.pool.idle_window,
            hard_expiry=config.pool.hard_expiry,
            connect_timeout=config.pool.connect_timeout,
            clock=clock,
        )
        cache = ResponseCache(
            ttls=config.cache.ttls,
            default_ttl=config.cache.default_ttl,
            hard_ceiling=config.cache.hard_ceiling,
            clock=clock,
        )
        rates = RateEngine(config.rates.min_sample_interval, clock=clock)
        collector = DeviceCollector(client, cache, rates, config.display)
        return cls(devices, pool, cache, collector)

    @property
    def devices(self) -> list[DeviceConfig]:
        return list(self._devices)

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    def get_device(self, device_id: int) -> DeviceConfig | None:
        return self._by_id.get(device_id)

    # ─────────────────────────────────────────────────────────────────────────
    # Fleet operations
    # ─────────────────────────────────────────────────────────────────────────

    async def fleet_overview(self) -> list[DeviceOverview]:
        """Overview of every device, in configured order."""
        return list(await asyncio.gather(
            *(self.device_overview(device) for device in self._devices)
        ))

    async def stream_overview(self) -> AsyncIterator[DeviceOverview]:
        """Yield each device's overview as soon as its own branch finishes."""
        for next_done in asyncio.as_completed(
            [self.device_overview(device) for device in self._devices]
        ):
            yield await next_done

    async def fleet_bandwidth_summary(self) -> list[FleetBandwidth]:
        """Formatted WAN receive rate per device; unreachable devices read 0 bps."""

        async def one(device: DeviceConfig) -> FleetBandwidth:
            summary = await self.device_bandwidth(device)
            return FleetBandwidth(id=device.id, bandwidth=summary.total_rx_rate_formatted)

        return list(await asyncio.gather(*(one(device) for device in self._devices)))

    def health(self) -> HealthReport:
        return HealthReport(
            timestamp=datetime.now(timezone.utc),
            routers=len(self._devices),
            active_connections=len(self._pool),
            cached_entries=len(self._cache),
        )

    async def sweep(self) -> None:
        """Periodic maintenance: expire idle sessions and stale cache entries."""
        closed = await self._pool.sweep()
        removed = self._cache.sweep()
        logger.debug("Sweep: %d sessions closed, %d cache entries removed", closed, removed)

    async def shutdown(self) -> None:
        await self._pool.close_all()
        self._cache.clear()

    # ─────────────────────────────────────────────────────────────────────────
    # Per-device operations
    # ─────────────────────────────────────────────────────────────────────────

    async def device_overview(self, device: DeviceConfig) -> DeviceOverview:
        """Short record: resources plus session and queue counts."""
        cached = self._cache.get(device.id, CATEGORY_OVERVIEW)
        if cached is not None:
            return cached

        lease = await self._pool.acquire(device)
        if not lease.ok:
            # Not cached: an offline device is re-checked every cycle
            return DeviceOverview(
                id=device.id,
                name=device.name,
                ip=device.ip,
                status=DeviceStatus.OFFLINE,
                error=lease.error,
            )

        session = lease.session
        results = await asyncio.gather(
            self._collector.resources(device, session),
            self._optional(device, "active sessions",
                           self._collector.sessions(device, session), SessionCounts()),
            self._optional(device, "queue counts",
                           self._collector.queue_counts(device, session), QueueCounts()),
            return_exceptions=True,
        )
        error = await self._settle(device, session, results)
        if error is not None:
            return DeviceOverview(
                id=device.id,
                name=device.name,
                ip=device.ip,
                status=DeviceStatus.ERRORED,
                error=error,
            )

        resources, sessions, queues = results
        result = DeviceOverview(
            id=device.id,
            name=device.name,
            ip=device.ip,
            status=DeviceStatus.ONLINE,
            resources=resources,
            sessions=sessions,
            queues=queues,
            polled_at=datetime.now(timezone.utc),
        )
        self._cache.set(device.id, CATEGORY_OVERVIEW, result)
        return result

    async def device_detail(self, device: DeviceConfig) -> DeviceDetail:
        """Full record: resources, sessions, queue listing and bandwidth."""
        lease = await self._pool.acquire(device)
        if not lease.ok:
            return DeviceDetail(
                id=device.id,
                name=device.name,
                ip=device.ip,
                status=DeviceStatus.OFFLINE,
                error=lease.error,
            )

        session = lease.session
        results = await asyncio.gather(
            self._collector.resources(device, session),
            self._optional(device, "active sessions",
                           self._collector.sessions(device, session), SessionCounts()),
            self._optional(device, "queues",
                           self._collector.queue_summary(device, session), QueueSummary()),
            self._optional(device, "bandwidth",
                           self._collector.bandwidth(device, session), BandwidthSummary()),
            return_exceptions=True,
        )
        error = await self._settle(device, session, results)
        if error is not None:
            return DeviceDetail(
                id=device.id,
                name=device.name,
                ip=device.ip,
                status=DeviceStatus.ERRORED,
                error=error,
            )

        resources, sessions, queues, bandwidth = results
        return DeviceDetail(
            id=device.id,
            name=device.name,
            ip=device.ip,
            status=DeviceStatus.ONLINE,
            resources=resources,
            sessions=sessions,
            queues=queues,
            bandwidth=bandwidth,
            polled_at=datetime.now(timezone.utc),
        )

    async def device_bandwidth(self, device: DeviceConfig) -> BandwidthSummary:
        """Bandwidth breakdown alone."""
        lease = await self._pool.acquire(device)
        if not lease.ok:
            return BandwidthSummary(error=f"Connection failed: {lease.error}")

        results = await asyncio.gather(
            self._collector.bandwidth(device, lease.session), return_exceptions=True,
        )
        error = await self._settle(device, lease.session, results)
        if error is not None:
            return BandwidthSummary(error=error)
        return results[0]

    async def device_queues(self, device: DeviceConfig) -> QueueSummary:
        """Queue listing alone."""
        lease = await self._pool.acquire(device)
        if not lease.ok:
            return QueueSummary(error=f"Connection failed: {lease.error}")

        results = await asyncio.gather(
            self._collector.queue_summary(device, lease.session), return_exceptions=True,
        )
        error = await self._settle(device, lease.session, results)
        if error is not None:
            return QueueSummary(error=error)
        return results[0]

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    async def _optional(
        self, device: DeviceConfig, label: str, query: Awaitable[T], default: T,
    ) -> T:
        """Run a sub-metric query whose failure only zeroes that metric."""
        try:
            return await query
        except RouterOSError as e:
            logger.warning("%s - error getting %s: %s", device.name, label, e)
            return default

    async def _settle(self, device: DeviceConfig, session: Any, results: list[Any]) -> str | None:
        """
        Release the session if every query succeeded.

        Otherwise evict it, so a possibly broken session is never reused, and
        return the first failure's message.
        """
        for result in results:
            if isinstance(result, BaseException):
                logger.error("%s - query failed: %s", device.name, result)
                await self._pool.evict(device, session)
                return str(result) or type(result).__name__

        self._pool.release(device)
        return None

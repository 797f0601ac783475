"""
Polling Scheduler

Uses APScheduler to run periodic maintenance and background fleet polls.
"""

from __future__ import annotations

import logging
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config import PollingConfig
from ..models.device import DeviceStatus
from ..websocket import ConnectionManager, status_change_message
from .aggregator import Aggregator

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Manages the sweep and overview polling jobs for one aggregator."""

    def __init__(
        self,
        aggregator: Aggregator,
        polling: PollingConfig | None = None,
        broadcaster: ConnectionManager | None = None,
    ):
        self._aggregator = aggregator
        self._polling = polling or PollingConfig()
        self._broadcaster = broadcaster
        self._scheduler: AsyncIOScheduler | None = None
        self._stopped = False
        self._last_status: dict[int, DeviceStatus] = {}

    @property
    def running(self) -> bool:
        return self._scheduler is not None and not self._stopped

    def start(self) -> None:
        """Start the polling scheduler."""
        self._stopped = False
        self._scheduler = AsyncIOScheduler()
        polling = self._polling

        # Pool and cache expiry
        self._scheduler.add_job(
            self.sweep,
            IntervalTrigger(seconds=polling.sweep_interval),
            id="sweep",
            name="Expire idle sessions and stale cache entries",
            replace_existing=True,
        )

        # Background overview poll, pushes status changes
        if polling.broadcast and polling.overview_interval > 0 and self._broadcaster:
            self._scheduler.add_job(
                self.poll_overview,
                IntervalTrigger(seconds=polling.overview_interval),
                id="poll_overview",
                name="Poll fleet overview",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )

        self._scheduler.start()
        logger.info(
            "Polling scheduler started: sweep=%ds, overview=%ds",
            polling.sweep_interval,
            polling.overview_interval,
        )

    async def stop(self) -> None:
        """Stop the scheduler; no job body runs after this returns."""
        self._stopped = True
        if self._scheduler:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Polling scheduler stopped")

    # ─────────────────────────────────────────────────────────────────────────
    # Jobs
    # ─────────────────────────────────────────────────────────────────────────

    async def sweep(self) -> None:
        if self._stopped:
            return
        try:
            await self._aggregator.sweep()
        except Exception as e:
            logger.error("Sweep failed: %s", e)

    async def poll_overview(self) -> None:
        """
        Poll every device and broadcast status transitions.

        The first sighting of a device only records its status.
        """
        if self._stopped:
            return

        changes: list[dict[str, Any]] = []
        try:
            async for overview in self._aggregator.stream_overview():
                previous = self._last_status.get(overview.id)
                self._last_status[overview.id] = overview.status
                if previous is not None and previous != overview.status:
                    changes.append({
                        "device_id": overview.id,
                        "name": overview.name,
                        "old_status": previous.value,
                        "new_status": overview.status.value,
                        "error": overview.error,
                    })
        except Exception as e:
            logger.error("Failed to poll fleet overview: %s", e)
            return

        if changes and self._broadcaster and not self._stopped:
            await self._broadcaster.broadcast(status_change_message(changes))
            logger.info("Device status changes detected: %d", len(changes))

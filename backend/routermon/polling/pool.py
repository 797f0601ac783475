"""
Connection Pool

Keeps at most one live API session per device. Warm sessions are reused
within the idle window; stale ones are closed before reconnecting, and a
periodic sweep closes anything idle past the hard expiry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from ..config import DeviceConfig
from .routeros import DeviceClient, RouterOSError

logger = logging.getLogger(__name__)


@dataclass
class PooledSession:
    """Pool entry owning one device session."""

    device_id: int
    session: Any
    last_used: float
    use_count: int = 1


@dataclass
class SessionLease:
    """Result of ConnectionPool.acquire: a session, or the reason there is none."""

    session: Any = None
    error: str | None = None
    reused: bool = False

    @property
    def ok(self) -> bool:
        return self.session is not None


class ConnectionPool:
    """Per-device session pool."""

    def __init__(
        self,
        client: DeviceClient,
        idle_window: float = 120.0,
        hard_expiry: float = 300.0,
        connect_timeout: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._idle_window = idle_window
        self._hard_expiry = hard_expiry
        self._connect_timeout = connect_timeout
        self._clock = clock
        self._entries: dict[int, PooledSession] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def client(self) -> DeviceClient:
        return self._client

    def get_entry(self, device_id: int) -> PooledSession | None:
        return self._entries.get(device_id)

    async def acquire(self, device: DeviceConfig) -> SessionLease:
        """
        Return a session for the device, reusing a warm one when possible.

        Never raises for connect failures: the lease carries the adapter's
        error message instead.
        """
        # Serialise per device so concurrent callers never open two sessions
        lock = self._locks.setdefault(device.id, asyncio.Lock())
        async with lock:
            now = self._clock()
            entry = self._entries.get(device.id)
            if entry is not None:
                if now - entry.last_used < self._idle_window:
                    entry.last_used = now
                    entry.use_count += 1
                    return SessionLease(session=entry.session, reused=True)

                logger.debug(
                    "Session for %s idle %.0fs, reconnecting",
                    device.name, now - entry.last_used,
                )
                del self._entries[device.id]
                await self._close_quietly(device.id, entry.session)

            try:
                session = await self._client.connect(
                    device.ip,
                    device.port,
                    device.username,
                    device.password,
                    self._connect_timeout,
                )
            except RouterOSError as e:
                logger.warning("Failed to connect to %s: %s", device.name, e)
                return SessionLease(error=str(e) or "Connection failed")
            except Exception as e:
                logger.exception("Unexpected error connecting to %s", device.name)
                return SessionLease(error=str(e) or type(e).__name__)

            self._entries[device.id] = PooledSession(
                device_id=device.id,
                session=session,
                last_used=self._clock(),
            )
            logger.debug("Connected to %s (%s:%d)", device.name, device.ip, device.port)
            return SessionLease(session=session)

    def release(self, device: DeviceConfig) -> None:
        """Soft release: mark the session used, keep it pooled."""
        entry = self._entries.get(device.id)
        if entry is not None:
            entry.last_used = self._clock()

    async def evict(self, device: DeviceConfig, session: Any = None) -> None:
        """
        Close and forget the device's session regardless of idle time.

        When ``session`` is given, only evict if that is still the pooled one,
        so a stale failure cannot close a newer healthy session.
        """
        entry = self._entries.get(device.id)
        if entry is None:
            return
        if session is not None and entry.session is not session:
            return
        del self._entries[device.id]
        await self._close_quietly(device.id, entry.session)
        logger.info("Evicted session for %s", device.name)

    async def sweep(self) -> int:
        """Close every session idle longer than the hard expiry. Returns the count."""
        now = self._clock()
        expired = [
            entry for entry in self._entries.values()
            if now - entry.last_used > self._hard_expiry
        ]
        # Unpool before any close is awaited so a concurrent acquire connects fresh
        for entry in expired:
            if self._entries.get(entry.device_id) is entry:
                del self._entries[entry.device_id]
        for entry in expired:
            await self._close_quietly(entry.device_id, entry.session)

        if expired:
            logger.info("Pool sweep closed %d idle sessions", len(expired))
        return len(expired)

    async def close_all(self) -> None:
        """Close every pooled session (shutdown)."""
        entries = list(self._entries.values())
        self._entries.clear()
        for entry in entries:
            await self._close_quietly(entry.device_id, entry.session)
        logger.info("Closed %d pooled sessions", len(entries))

    async def _close_quietly(self, device_id: int, session: Any) -> None:
        try:
            await self._client.close(session)
        except Exception as e:
            logger.debug("Non-fatal close error for device %s: %s", device_id, e)

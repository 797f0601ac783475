"""
Device Collectors

One method per device query. Each consults the response cache for its own
category first, and raises QueryFailure when the device cannot answer.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..cache import (
    CATEGORY_BANDWIDTH,
    CATEGORY_QUEUE_COUNTS,
    CATEGORY_QUEUES,
    CATEGORY_RESOURCES,
    CATEGORY_SESSIONS,
    ResponseCache,
)
from ..config import DeviceConfig, DisplayConfig
from ..models.device import ResourceStats, SessionCounts
from ..models.traffic import (
    BandwidthSummary,
    InterfaceBandwidth,
    QueueCounts,
    QueueEntry,
    QueueSummary,
)
from ..units import parse_bandwidth
from .rates import RateEngine
from .routeros import DeviceClient, QueryFailure, Row

logger = logging.getLogger(__name__)

# Interfaces worth charting: physical ethernet, VLANs, bridges, PPPoE
RELEVANT_NAME_PREFIXES = ("ether", "vlan", "bridge", "pppoe")
RELEVANT_TYPES = frozenset({"ether", "vlan", "bridge", "ppp-out", "pppoe-out"})
TUNNEL_NAME_MARKERS = ("ovpn", "l2tp")
TUNNEL_TYPES = frozenset({
    "ovpn-in", "ovpn-out", "l2tp-in", "l2tp-out", "pptp-in", "pptp-out",
    "sstp-in", "sstp-out", "gre-tunnel", "eoip", "ipip", "wg",
})

_LEADING_INT = re.compile(r"\s*-?\d+")


# ─────────────────────────────────────────────────────────────────────────────
# Value helpers
# ─────────────────────────────────────────────────────────────────────────────


def as_int(value: Any) -> int:
    """Coerce a reply attribute to int; librouteros may already have converted it."""
    if isinstance(value, (bool, int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group()) if match else 0


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "yes")


def split_pair(value: Any, default: str = "0/0") -> tuple[str, str]:
    """Split an ``upload/download`` attribute such as ``10M/20M``."""
    up, _, down = str(value or default).partition("/")
    return up, down


def count_reply(rows: list[Row]) -> int | None:
    """Number from a ``=count-only=`` reply, falling back to the row count."""
    if not rows:
        return None
    if "ret" in rows[0]:
        return as_int(rows[0]["ret"])
    return len(rows)


def is_relevant_interface(name: str, if_type: str | None) -> bool:
    if any(marker in name for marker in TUNNEL_NAME_MARKERS):
        return False
    if if_type in TUNNEL_TYPES:
        return False
    return name.startswith(RELEVANT_NAME_PREFIXES) or if_type in RELEVANT_TYPES


# ─────────────────────────────────────────────────────────────────────────────
# Collector
# ─────────────────────────────────────────────────────────────────────────────


class DeviceCollector:
    """Runs the individual device queries against an acquired session."""

    def __init__(
        self,
        client: DeviceClient,
        cache: ResponseCache,
        rates: RateEngine,
        display: DisplayConfig | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._rates = rates
        self._display = display or DisplayConfig()

    async def resources(self, device: DeviceConfig, session: Any) -> ResourceStats:
        """CPU and memory from /system/resource."""
        cached = self._cache.get(device.id, CATEGORY_RESOURCES)
        if cached is not None:
            return cached

        rows = await self._client.query(session, "/system/resource/print")
        if not rows:
            raise QueryFailure("No resource data returned")

        row = rows[0]
        total = as_int(row.get("total-memory"))
        free = as_int(row.get("free-memory"))
        used = total - free
        result = ResourceStats(
            cpu=as_int(row.get("cpu-load")),
            memory_total=total,
            memory_free=free,
            memory_used=used,
            memory_usage=round(used / total * 100) if total > 0 else 0,
            uptime=str(row.get("uptime") or "0s"),
            version=str(row.get("version") or "unknown"),
            board=str(row.get("board-name") or "unknown"),
        )
        self._cache.set(device.id, CATEGORY_RESOURCES, result)
        return result

    async def sessions(self, device: DeviceConfig, session: Any) -> SessionCounts:
        """Count running PPPoE server sessions."""
        cached = self._cache.get(device.id, CATEGORY_SESSIONS)
        if cached is not None:
            return cached

        rows = await self._client.query(
            session, "/interface/print", "?type=pppoe-in", "?running=true",
        )
        result = SessionCounts(pppoe=len(rows), total=len(rows))
        self._cache.set(device.id, CATEGORY_SESSIONS, result)
        return result

    async def queue_counts(self, device: DeviceConfig, session: Any) -> QueueCounts:
        """Simple-queue totals without fetching the queues themselves."""
        cached = self._cache.get(device.id, CATEGORY_QUEUE_COUNTS)
        if cached is not None:
            return cached

        total = count_reply(
            await self._client.query(session, "/queue/simple/print", "=count-only=")
        ) or 0
        active = count_reply(
            await self._client.query(
                session, "/queue/simple/print", "?disabled=false", "=count-only=",
            )
        )
        if active is None:
            active = total

        result = QueueCounts(total=total, active=active, disabled=total - active)
        self._cache.set(device.id, CATEGORY_QUEUE_COUNTS, result)
        return result

    async def queue_summary(self, device: DeviceConfig, session: Any) -> QueueSummary:
        """Full simple-queue listing; totals over all queues, entries truncated."""
        cached = self._cache.get(device.id, CATEGORY_QUEUES)
        if cached is not None:
            return cached

        rows = await self._client.query(session, "/queue/simple/print")

        active = 0
        limit_up = 0
        limit_down = 0
        entries: list[QueueEntry] = []
        for index, row in enumerate(rows):
            disabled = as_bool(row.get("disabled"))
            if not disabled:
                active += 1

            up_limit, down_limit = split_pair(row.get("max-limit"))
            up_bps = parse_bandwidth(up_limit)
            down_bps = parse_bandwidth(down_limit)
            limit_up += up_bps
            limit_down += down_bps

            if index >= self._display.queue_limit:
                continue

            bytes_up, bytes_down = split_pair(row.get("bytes"))
            entries.append(QueueEntry(
                name=str(row.get("name") or ""),
                target=row.get("target"),
                parent=str(row.get("parent") or "none"),
                max_limit_up=up_bps,
                max_limit_down=down_bps,
                bytes_up=as_int(bytes_up),
                bytes_down=as_int(bytes_down),
                disabled=disabled,
            ))

        result = QueueSummary(
            total=len(rows),
            active=active,
            disabled=len(rows) - active,
            total_bandwidth_up=limit_up,
            total_bandwidth_down=limit_down,
            queues=entries,
        )
        self._cache.set(device.id, CATEGORY_QUEUES, result)
        return result

    async def bandwidth(self, device: DeviceConfig, session: Any) -> BandwidthSummary:
        """Throughput of running interfaces, busiest first."""
        cached = self._cache.get(device.id, CATEGORY_BANDWIDTH)
        if cached is not None:
            return cached

        rows = await self._client.query(session, "/interface/print", "?running=true")

        wan = set(self._display.wan_interfaces)
        total_rx = 0
        total_tx = 0
        interfaces: list[InterfaceBandwidth] = []
        for row in rows:
            name = str(row.get("name") or "")
            if_type = row.get("type")
            if not name or not is_relevant_interface(name, if_type):
                continue

            rx_bytes = as_int(row.get("rx-byte"))
            tx_bytes = as_int(row.get("tx-byte"))
            rx_rate, tx_rate = self._rates.compute_rate(device.id, name, rx_bytes, tx_bytes)

            interfaces.append(InterfaceBandwidth(
                name=name,
                type=if_type,
                rx_rate=rx_rate,
                tx_rate=tx_rate,
                rx_bytes=rx_bytes,
                tx_bytes=tx_bytes,
            ))

            # Device totals follow the WAN uplink
            if name in wan:
                total_rx = rx_rate
                total_tx = tx_rate

        interfaces.sort(key=lambda i: i.rx_rate + i.tx_rate, reverse=True)

        result = BandwidthSummary(
            total_rx_rate=total_rx,
            total_tx_rate=total_tx,
            interfaces=interfaces[: self._display.bandwidth_limit],
        )
        self._cache.set(device.id, CATEGORY_BANDWIDTH, result)
        return result

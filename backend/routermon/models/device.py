"""Device snapshot models for Routermon."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from ..units import format_bytes
from .traffic import BandwidthSummary, QueueCounts, QueueSummary


class DeviceStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"   # connect failed or login rejected
    ERRORED = "errored"   # connected, but a required query failed


class ResourceStats(BaseModel):
    """CPU, memory and system identity from /system/resource."""

    model_config = ConfigDict(frozen=True)

    cpu: int = 0  # percent
    memory_total: int = 0  # bytes
    memory_free: int = 0
    memory_used: int = 0
    memory_usage: int = 0  # percent
    uptime: str = "0s"
    version: str = "unknown"
    board: str = "unknown"

    @computed_field
    @property
    def memory_total_formatted(self) -> str:
        return format_bytes(self.memory_total)

    @computed_field
    @property
    def memory_free_formatted(self) -> str:
        return format_bytes(self.memory_free)

    @computed_field
    @property
    def memory_used_formatted(self) -> str:
        return format_bytes(self.memory_used)


class SessionCounts(BaseModel):
    """Active subscriber sessions."""

    model_config = ConfigDict(frozen=True)

    pppoe: int = 0
    dhcp: int = 0
    hotspot: int = 0
    total: int = 0


class DeviceOverview(BaseModel):
    """Short per-device record for the fleet overview."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    ip: str
    status: DeviceStatus
    error: Optional[str] = None
    resources: ResourceStats = ResourceStats()
    sessions: SessionCounts = SessionCounts()
    queues: QueueCounts = QueueCounts()
    polled_at: Optional[datetime] = None


class DeviceDetail(BaseModel):
    """Full per-device record: resources, sessions, queues and bandwidth."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    ip: str
    status: DeviceStatus
    error: Optional[str] = None
    resources: ResourceStats = ResourceStats()
    sessions: SessionCounts = SessionCounts()
    queues: QueueSummary = QueueSummary()
    bandwidth: BandwidthSummary = BandwidthSummary()
    polled_at: Optional[datetime] = None


class HealthReport(BaseModel):
    """Process-wide pool and cache counters."""

    status: str = "ok"
    timestamp: datetime
    routers: int = 0
    active_connections: int = 0
    cached_entries: int = 0

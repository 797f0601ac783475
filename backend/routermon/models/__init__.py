# Pydantic models
from .device import (
    DeviceDetail,
    DeviceOverview,
    DeviceStatus,
    HealthReport,
    ResourceStats,
    SessionCounts,
)
from .traffic import (
    BandwidthSummary,
    FleetBandwidth,
    InterfaceBandwidth,
    QueueCounts,
    QueueEntry,
    QueueSummary,
)

__all__ = [
    "DeviceDetail",
    "DeviceOverview",
    "DeviceStatus",
    "HealthReport",
    "ResourceStats",
    "SessionCounts",
    "BandwidthSummary",
    "FleetBandwidth",
    "InterfaceBandwidth",
    "QueueCounts",
    "QueueEntry",
    "QueueSummary",
]

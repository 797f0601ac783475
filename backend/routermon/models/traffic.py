"""Queue and bandwidth models for Routermon."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from ..units import format_bps, format_bytes


class QueueCounts(BaseModel):
    """Lightweight simple-queue counts used by the fleet overview."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    active: int = 0
    disabled: int = 0


class QueueEntry(BaseModel):
    """A single simple queue (shaping rule) on a device."""

    model_config = ConfigDict(frozen=True)

    name: str
    target: Optional[str] = None
    parent: str = "none"
    max_limit_up: int = 0    # bps
    max_limit_down: int = 0  # bps
    bytes_up: int = 0
    bytes_down: int = 0
    disabled: bool = False

    @computed_field
    @property
    def max_limit_up_formatted(self) -> str:
        return format_bps(self.max_limit_up)

    @computed_field
    @property
    def max_limit_down_formatted(self) -> str:
        return format_bps(self.max_limit_down)

    @computed_field
    @property
    def bytes_up_formatted(self) -> str:
        return format_bytes(self.bytes_up)

    @computed_field
    @property
    def bytes_down_formatted(self) -> str:
        return format_bytes(self.bytes_down)


class QueueSummary(BaseModel):
    """
    Full queue listing.

    Counts and aggregate limits cover every queue on the device; ``queues``
    holds only the first entries kept for display.
    """

    model_config = ConfigDict(frozen=True)

    total: int = 0
    active: int = 0
    disabled: int = 0
    total_bandwidth_up: int = 0    # sum of max-limit, bps
    total_bandwidth_down: int = 0
    queues: list[QueueEntry] = []
    error: Optional[str] = None

    @computed_field
    @property
    def total_bandwidth_up_formatted(self) -> str:
        return format_bps(self.total_bandwidth_up)

    @computed_field
    @property
    def total_bandwidth_down_formatted(self) -> str:
        return format_bps(self.total_bandwidth_down)


class InterfaceBandwidth(BaseModel):
    """Throughput of one running interface."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: Optional[str] = None
    rx_rate: int = 0  # bits per second
    tx_rate: int = 0
    rx_bytes: int = 0  # raw counters
    tx_bytes: int = 0
    running: bool = True

    @computed_field
    @property
    def rx_rate_formatted(self) -> str:
        return format_bps(self.rx_rate)

    @computed_field
    @property
    def tx_rate_formatted(self) -> str:
        return format_bps(self.tx_rate)


class BandwidthSummary(BaseModel):
    """Per-interface throughput, busiest first, plus the WAN totals."""

    model_config = ConfigDict(frozen=True)

    total_rx_rate: int = 0
    total_tx_rate: int = 0
    interfaces: list[InterfaceBandwidth] = []
    error: Optional[str] = None

    @computed_field
    @property
    def total_rx_rate_formatted(self) -> str:
        return format_bps(self.total_rx_rate)

    @computed_field
    @property
    def total_tx_rate_formatted(self) -> str:
        return format_bps(self.total_tx_rate)


class FleetBandwidth(BaseModel):
    """Bandwidth card entry for the fleet view."""

    id: int
    bandwidth: str = "0 bps"

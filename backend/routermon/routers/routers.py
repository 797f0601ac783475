"""Router (device) API routes."""

from fastapi import APIRouter, Depends, HTTPException, Request

from ..config import DeviceConfig
from ..models.device import DeviceDetail, DeviceOverview, HealthReport
from ..models.traffic import BandwidthSummary, FleetBandwidth, QueueSummary
from ..polling.aggregator import Aggregator

router = APIRouter()


def get_aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator


def _require_device(aggregator: Aggregator, router_id: int) -> DeviceConfig:
    device = aggregator.get_device(router_id)
    if not device:
        raise HTTPException(status_code=404, detail="Router not found")
    return device


@router.get("/health", response_model=HealthReport)
async def health(aggregator: Aggregator = Depends(get_aggregator)):
    """Pool and cache counters plus the configured router count."""
    return aggregator.health()


@router.get("/routers", response_model=list[DeviceOverview])
async def list_routers(aggregator: Aggregator = Depends(get_aggregator)):
    """Overview of every configured router."""
    return await aggregator.fleet_overview()


@router.get("/routers/bandwidth-summary", response_model=list[FleetBandwidth])
async def bandwidth_summary(aggregator: Aggregator = Depends(get_aggregator)):
    """Current WAN receive rate for each router's card."""
    return await aggregator.fleet_bandwidth_summary()


@router.get("/routers/{router_id}", response_model=DeviceDetail)
async def get_router(router_id: int, aggregator: Aggregator = Depends(get_aggregator)):
    """Full detail for one router."""
    device = _require_device(aggregator, router_id)
    return await aggregator.device_detail(device)


@router.get("/routers/{router_id}/bandwidth", response_model=BandwidthSummary)
async def get_router_bandwidth(router_id: int, aggregator: Aggregator = Depends(get_aggregator)):
    """Per-interface bandwidth for one router."""
    device = _require_device(aggregator, router_id)
    return await aggregator.device_bandwidth(device)


@router.get("/routers/{router_id}/queues", response_model=QueueSummary)
async def get_router_queues(router_id: int, aggregator: Aggregator = Depends(get_aggregator)):
    """Simple queue listing for one router."""
    device = _require_device(aggregator, router_id)
    return await aggregator.device_queues(device)

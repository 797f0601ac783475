"""Unit tests for DeviceCollector and its value helpers."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from routermon.cache import CATEGORY_RESOURCES
from routermon.config import DisplayConfig
from routermon.polling.collectors import (
    DeviceCollector,
    as_bool,
    as_int,
    count_reply,
    is_relevant_interface,
    split_pair,
)
from routermon.polling.mock import MockRouterOSClient
from routermon.polling.routeros import QueryFailure


async def _session(client, device):
    return await client.connect(device.ip, device.port, device.username, device.password, 15)


# ── Value helpers ────────────────────────────────────────────────────


def test_as_int():
    assert as_int("42") == 42
    assert as_int(42) == 42
    assert as_int("12abc") == 12
    assert as_int(None) == 0
    assert as_int("") == 0
    assert as_int(True) == 1


def test_as_bool():
    assert as_bool(True)
    assert as_bool("true")
    assert as_bool("yes")
    assert not as_bool("false")
    assert not as_bool(None)


def test_split_pair():
    assert split_pair("10M/20M") == ("10M", "20M")
    assert split_pair(None) == ("0", "0")


def test_count_reply():
    assert count_reply([{"ret": "17"}]) == 17
    assert count_reply([{"name": "a"}, {"name": "b"}]) == 2
    assert count_reply([]) is None


@pytest.mark.parametrize(
    "name, if_type, expected",
    [
        ("ether1", "ether", True),
        ("vlan100", "vlan", True),
        ("bridge-lan", "bridge", True),
        ("pppoe-out1", "pppoe-out", True),
        ("wan", "ether", True),
        ("uplink", "ppp-out", True),
        ("ovpn-out1", "ovpn-out", False),
        ("l2tp-hq", "l2tp-out", False),
        ("ether-gre", "gre-tunnel", False),
        ("<pppoe-user1>", "pppoe-in", False),
        ("wlan1", "wlan", False),
    ],
)
def test_is_relevant_interface(name, if_type, expected):
    assert is_relevant_interface(name, if_type) is expected


# ── Resources ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_resources(collector, client, device):
    session = await _session(client, device)
    router = client.router(device.ip)

    stats = await collector.resources(device, session)

    assert stats.cpu == router.cpu
    assert stats.memory_total == router.total_memory
    assert stats.memory_used == router.total_memory - router.free_memory
    assert 0 < stats.memory_usage < 100
    assert stats.board == router.board
    assert stats.memory_total_formatted.split()[1] in ("MB", "GB")


@pytest.mark.asyncio
async def test_resources_are_cached(collector, client, device, cache):
    session = await _session(client, device)

    first = await collector.resources(device, session)
    second = await collector.resources(device, session)

    assert second is first
    assert cache.get(device.id, CATEGORY_RESOURCES) is first
    assert len(client.queries) == 1


@pytest.mark.asyncio
async def test_resources_empty_reply_fails(cache, rates, device):
    client = MagicMock()
    client.query = AsyncMock(return_value=[])
    collector = DeviceCollector(client, cache, rates)

    with pytest.raises(QueryFailure, match="No resource data"):
        await collector.resources(device, object())


# ── Sessions and queue counts ────────────────────────────────────────


@pytest.mark.asyncio
async def test_sessions_count_running_pppoe(collector, client, device):
    session = await _session(client, device)
    expected = sum(1 for i in client.router(device.ip).interfaces if i.type == "pppoe-in")

    counts = await collector.sessions(device, session)

    assert counts.pppoe == expected
    assert counts.total == expected
    assert counts.dhcp == 0


@pytest.mark.asyncio
async def test_queue_counts(collector, client, device):
    session = await _session(client, device)
    queues = client.router(device.ip).queues
    enabled = sum(1 for q in queues if q["disabled"] == "false")

    counts = await collector.queue_counts(device, session)

    assert counts.total == len(queues)
    assert counts.active == enabled
    assert counts.disabled == len(queues) - enabled


# ── Queue listing ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_queue_summary_totals_cover_all_queues(collector, client, device):
    """Totals span all 30 queues even though only 20 are listed."""
    session = await _session(client, device)
    queues = client.router(device.ip).queues

    summary = await collector.queue_summary(device, session)

    assert summary.total == 30
    assert len(summary.queues) == 20
    assert summary.active == sum(1 for q in queues if q["disabled"] == "false")
    expected_up = sum(int(q["max-limit"].split("/")[0][:-1]) * 1_000_000 for q in queues)
    assert summary.total_bandwidth_up == expected_up
    assert summary.queues[0].name == "client-000"
    assert summary.queues[0].target == "192.168.88.10/32"


@pytest.mark.asyncio
async def test_queue_summary_respects_display_limit(client, cache, rates, device):
    collector = DeviceCollector(client, cache, rates, DisplayConfig(queue_limit=5))
    session = await _session(client, device)

    summary = await collector.queue_summary(device, session)

    assert len(summary.queues) == 5
    assert summary.total == 30


# ── Bandwidth ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_bandwidth_first_poll_is_zero(collector, client, device):
    session = await _session(client, device)

    summary = await collector.bandwidth(device, session)

    names = {i.name for i in summary.interfaces}
    assert "ether1" in names
    assert "bridge-lan" in names
    assert "ovpn-out1" not in names
    assert "ether-spare" not in names  # not running
    assert not any(name.startswith("<pppoe") for name in names)
    assert all(i.rx_rate == 0 and i.tx_rate == 0 for i in summary.interfaces)


@pytest.mark.asyncio
async def test_bandwidth_rates_and_ordering(collector, client, device, clock):
    session = await _session(client, device)
    router = client.router(device.ip)
    by_name = {i.name: i for i in router.interfaces}

    await collector.bandwidth(device, session)
    clock.advance(2.0)
    summary = await collector.bandwidth(device, session)

    for iface in summary.interfaces:
        assert iface.rx_rate == by_name[iface.name].rx_bps
        assert iface.tx_rate == by_name[iface.name].tx_bps

    combined = [i.rx_rate + i.tx_rate for i in summary.interfaces]
    assert combined == sorted(combined, reverse=True)
    assert summary.total_rx_rate == by_name["ether1"].rx_bps
    assert summary.total_tx_rate == by_name["ether1"].tx_bps


@pytest.mark.asyncio
async def test_bandwidth_top_limit(client, cache, rates, device):
    collector = DeviceCollector(client, cache, rates, DisplayConfig(bandwidth_limit=2))
    session = await _session(client, device)

    summary = await collector.bandwidth(device, session)

    assert len(summary.interfaces) == 2


@pytest.mark.asyncio
async def test_bandwidth_cached_within_ttl(collector, client, device, clock):
    session = await _session(client, device)

    first = await collector.bandwidth(device, session)
    clock.advance(1.0)
    second = await collector.bandwidth(device, session)

    assert second is first
    assert len(client.queries) == 1


@pytest.mark.asyncio
async def test_query_failure_propagates(cache, rates, device, clock):
    client = MockRouterOSClient(failing_paths={device.ip: {"/interface/print"}}, clock=clock)
    collector = DeviceCollector(client, cache, rates)
    session = await _session(client, device)

    with pytest.raises(QueryFailure):
        await collector.bandwidth(device, session)

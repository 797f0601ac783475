"""Unit tests for ConnectionPool."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from routermon.polling.mock import MockRouterOSClient
from routermon.polling.pool import ConnectionPool
from routermon.polling.routeros import ConnectFailure


# ── Reuse ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_acquire_reuses_warm_session(pool, client, device, clock):
    """Two acquires inside the idle window share one session and one connect."""
    first = await pool.acquire(device)
    clock.advance(60)
    second = await pool.acquire(device)

    assert first.ok and second.ok
    assert second.session is first.session
    assert second.reused
    assert client.connect_calls == ["10.0.0.1"]

    entry = pool.get_entry(device.id)
    assert entry.use_count == 2
    assert entry.last_used == clock.now


@pytest.mark.asyncio
async def test_release_keeps_session_warm(pool, client, device, clock):
    lease = await pool.acquire(device)
    clock.advance(100)
    pool.release(device)
    clock.advance(100)

    again = await pool.acquire(device)

    assert again.session is lease.session
    assert len(client.connect_calls) == 1
    assert client.close_calls == []


@pytest.mark.asyncio
async def test_concurrent_acquire_connects_once(device, clock):
    """Concurrent first acquires for one device never open two sessions."""
    client = MockRouterOSClient(latency={"10.0.0.1": 0.05}, clock=clock)
    pool = ConnectionPool(client, clock=clock)

    leases = await asyncio.gather(*(pool.acquire(device) for _ in range(5)))

    assert len(client.connect_calls) == 1
    assert len({id(lease.session) for lease in leases}) == 1
    assert len(pool) == 1


# ── Expiry ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_acquire_after_idle_window_reconnects(pool, client, device, clock):
    first = await pool.acquire(device)
    clock.advance(120)

    second = await pool.acquire(device)

    assert second.session is not first.session
    assert not second.reused
    assert first.session.closed
    assert client.close_calls == ["10.0.0.1"]
    assert len(client.connect_calls) == 2
    assert len(pool) == 1


@pytest.mark.asyncio
async def test_sweep_closes_sessions_past_hard_expiry(pool, client, devices, clock):
    await pool.acquire(devices[0])
    clock.advance(200)
    await pool.acquire(devices[1])
    clock.advance(101)

    closed = await pool.sweep()

    assert closed == 1
    assert pool.get_entry(devices[0].id) is None
    assert pool.get_entry(devices[1].id) is not None
    assert client.close_calls == ["10.0.0.1"]


@pytest.mark.asyncio
async def test_acquire_during_sweep_keeps_new_session(devices, clock):
    """A reconnect that lands while the sweep is still closing stays pooled."""
    client = MockRouterOSClient(latency={"10.0.0.1": 0.05}, clock=clock)
    pool = ConnectionPool(client, clock=clock)
    await pool.acquire(devices[0])
    old = await pool.acquire(devices[1])
    clock.advance(301)

    sweep = asyncio.create_task(pool.sweep())
    await asyncio.sleep(0)  # sweep is now waiting on the slow close
    new = await pool.acquire(devices[1])
    closed = await sweep

    assert closed == 2
    assert new.session is not old.session
    assert not new.reused
    assert pool.get_entry(devices[1].id).session is new.session
    assert not new.session.closed
    assert old.session.closed
    assert client.close_calls.count("10.0.0.2") == 1
    assert len(pool) == 1


@pytest.mark.asyncio
async def test_acquire_after_sweep_reconnects(pool, client, device, clock):
    await pool.acquire(device)
    clock.advance(301)
    await pool.sweep()

    lease = await pool.acquire(device)

    assert lease.ok
    assert len(client.connect_calls) == 2


# ── Failures ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_connect_failure_returns_failed_lease(device, clock):
    client = MockRouterOSClient(offline={"10.0.0.1"}, clock=clock)
    pool = ConnectionPool(client, clock=clock)

    lease = await pool.acquire(device)

    assert not lease.ok
    assert lease.session is None
    assert "timed out" in lease.error
    assert len(pool) == 0


@pytest.mark.asyncio
async def test_unexpected_connect_error_is_not_raised(device, clock):
    client = MagicMock()
    client.connect = AsyncMock(side_effect=RuntimeError("socket exploded"))
    pool = ConnectionPool(client, clock=clock)

    lease = await pool.acquire(device)

    assert not lease.ok
    assert lease.error == "socket exploded"


@pytest.mark.asyncio
async def test_close_failure_does_not_block_reconnect(device, clock):
    """A close that raises is swallowed and the stale entry is still replaced."""
    old, new = object(), object()
    client = MagicMock()
    client.connect = AsyncMock(side_effect=[old, new])
    client.close = AsyncMock(side_effect=ConnectFailure("already gone"))
    pool = ConnectionPool(client, clock=clock)

    await pool.acquire(device)
    clock.advance(121)
    lease = await pool.acquire(device)

    assert lease.session is new
    client.close.assert_awaited_once_with(old)


# ── Eviction ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_evict_closes_regardless_of_idle_time(pool, client, device):
    lease = await pool.acquire(device)

    await pool.evict(device)

    assert len(pool) == 0
    assert lease.session.closed
    assert (await pool.acquire(device)).session is not lease.session


@pytest.mark.asyncio
async def test_evict_ignores_superseded_session(pool, client, device, clock):
    """Evicting an old session must not close the newer pooled one."""
    old = await pool.acquire(device)
    clock.advance(121)
    new = await pool.acquire(device)

    await pool.evict(device, old.session)

    assert pool.get_entry(device.id).session is new.session
    assert not new.session.closed


@pytest.mark.asyncio
async def test_close_all(pool, client, devices):
    for d in devices:
        await pool.acquire(d)

    await pool.close_all()

    assert len(pool) == 0
    assert sorted(client.close_calls) == ["10.0.0.1", "10.0.0.2", "10.0.0.3"]

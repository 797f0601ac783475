"""
Mock RouterOS client for development and tests.

Same interface as RouterOSClient, but every reply is generated in-process,
deterministic per host. Interface byte counters advance with the clock at a
fixed per-interface rate, so computed throughput is stable.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable

from ..config import DeviceConfig
from .routeros import ConnectFailure, QueryFailure, Row

logger = logging.getLogger(__name__)


@dataclass
class MockSession:
    host: str
    closed: bool = False


@dataclass
class MockInterface:
    name: str
    type: str
    rx_bps: int  # bits per second the counters advance at
    tx_bps: int
    running: bool = True


@dataclass
class MockRouter:
    """Generated state of one mock device."""

    board: str
    version: str
    cpu: int
    total_memory: int
    free_memory: int
    uptime: str
    interfaces: list[MockInterface] = field(default_factory=list)
    queues: list[Row] = field(default_factory=list)


def generate_mock_devices(count: int = 3) -> list[DeviceConfig]:
    """Demo fleet for dev mode when no device file is configured."""
    names = ["Core", "Branch", "Tower", "Datacenter", "Warehouse"]
    return [
        DeviceConfig(id=i + 1, name=names[i % len(names)], ip=f"192.0.2.{i + 1}")
        for i in range(count)
    ]


def generate_router(host: str, queue_count: int = 30) -> MockRouter:
    """Build a plausible router for a host; the same host always yields the same router."""
    rng = random.Random(host)
    total_memory = rng.choice([256, 512, 1024]) * 1024 * 1024

    interfaces = [
        MockInterface(f"ether{i}", "ether", rng.randint(1, 200) * 100_000, rng.randint(1, 50) * 100_000)
        for i in range(1, rng.randint(3, 6) + 1)
    ]
    interfaces.append(MockInterface("bridge-lan", "bridge", rng.randint(1, 100) * 100_000, rng.randint(1, 100) * 100_000))
    interfaces.append(MockInterface("vlan10", "vlan", rng.randint(1, 20) * 100_000, rng.randint(1, 20) * 100_000))
    interfaces.append(MockInterface("ovpn-out1", "ovpn-out", 64_000, 64_000))
    interfaces.append(MockInterface("ether-spare", "ether", 0, 0, running=False))
    for i in range(rng.randint(2, 12)):
        interfaces.append(MockInterface(f"<pppoe-user{i}>", "pppoe-in", 256_000, 64_000))

    queues = []
    for i in range(queue_count):
        up, down = rng.choice([(5, 10), (10, 20), (20, 50)])
        queues.append({
            "name": f"client-{i:03d}",
            "target": f"192.168.88.{i + 10}/32",
            "max-limit": f"{up}M/{down}M",
            "bytes": f"{rng.randint(0, 10**9)}/{rng.randint(0, 10**10)}",
            "disabled": "true" if rng.random() < 0.1 else "false",
        })

    return MockRouter(
        board=rng.choice(["RB4011iGS+", "CCR1009-7G-1C-1S+", "hEX S"]),
        version=rng.choice(["6.49.10 (long-term)", "7.12.1 (stable)"]),
        cpu=rng.randint(2, 45),
        total_memory=total_memory,
        free_memory=int(total_memory * rng.uniform(0.3, 0.8)),
        uptime=f"{rng.randint(1, 60)}d{rng.randint(0, 23)}h{rng.randint(0, 59)}m",
        interfaces=interfaces,
        queues=queues,
    )


def _matches(row: Row, filters: dict[str, str]) -> bool:
    return all(str(row.get(key)) == value for key, value in filters.items())


class MockRouterOSClient:
    """
    Drop-in replacement for RouterOSClient with scriptable failures.

    ``offline`` hosts refuse connections, ``failing_paths`` maps a host to
    the command paths that raise QueryFailure, and ``latency`` adds a delay
    per host to every call.
    """

    def __init__(
        self,
        offline: set[str] | None = None,
        failing_paths: dict[str, set[str]] | None = None,
        latency: dict[str, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.offline = set(offline or ())
        self.failing_paths = dict(failing_paths or {})
        self.latency = dict(latency or {})
        self._clock = clock
        self._started = clock()
        self._routers: dict[str, MockRouter] = {}
        self.connect_calls: list[str] = []
        self.close_calls: list[str] = []
        self.queries: list[tuple[str, str, tuple[str, ...]]] = []

    def router(self, host: str) -> MockRouter:
        if host not in self._routers:
            self._routers[host] = generate_router(host)
        return self._routers[host]

    async def _delay(self, host: str) -> None:
        await asyncio.sleep(self.latency.get(host, 0))

    async def connect(
        self, host: str, port: int, username: str, password: str, timeout: float,
    ) -> MockSession:
        self.connect_calls.append(host)
        await self._delay(host)
        if host in self.offline:
            raise ConnectFailure(f"{host}:{port}: timed out")
        return MockSession(host)

    async def query(self, session: MockSession, path: str, *words: str) -> list[Row]:
        self.queries.append((session.host, path, words))
        await self._delay(session.host)
        if session.closed:
            raise QueryFailure(f"{path}: connection closed")
        if path in self.failing_paths.get(session.host, set()):
            raise QueryFailure(f"{path}: failure: no such command")

        filters = {
            word[1:].split("=", 1)[0]: word.split("=", 1)[1]
            for word in words if word.startswith("?")
        }
        count_only = "=count-only=" in words
        router = self.router(session.host)

        if path == "/system/resource/print":
            rows = [{
                "cpu-load": str(router.cpu),
                "total-memory": str(router.total_memory),
                "free-memory": str(router.free_memory),
                "uptime": router.uptime,
                "version": router.version,
                "board-name": router.board,
            }]
        elif path == "/interface/print":
            elapsed = self._clock() - self._started
            rows = [
                {
                    "name": iface.name,
                    "type": iface.type,
                    "running": "true" if iface.running else "false",
                    "rx-byte": str(int(iface.rx_bps * elapsed / 8)),
                    "tx-byte": str(int(iface.tx_bps * elapsed / 8)),
                }
                for iface in router.interfaces
            ]
        elif path == "/queue/simple/print":
            rows = list(router.queues)
        else:
            raise QueryFailure(f"{path}: no such command")

        rows = [row for row in rows if _matches(row, filters)]
        if count_only:
            return [{"ret": str(len(rows))}]
        return rows

    async def close(self, session: MockSession) -> None:
        self.close_calls.append(session.host)
        await self._delay(session.host)
        session.closed = True

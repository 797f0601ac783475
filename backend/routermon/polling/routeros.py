"""
RouterOS API Client

Async facade over the blocking librouteros client. Every call runs in a
worker thread via asyncio.to_thread; commands on one session are serialised
because librouteros cannot interleave replies on a single socket.

All librouteros and socket errors are converted to ConnectFailure or
QueryFailure so callers only ever handle RouterOSError.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import librouteros
from librouteros.exceptions import LibRouterosError

logger = logging.getLogger(__name__)

Row = dict[str, Any]


class RouterOSError(Exception):
    """Base RouterOS adapter error."""


class ConnectFailure(RouterOSError):
    """Device unreachable, timed out, or login rejected."""


class QueryFailure(RouterOSError):
    """Session was accepted but a command failed."""


class DeviceClient(Protocol):
    """The adapter surface the connection pool and collectors depend on."""

    async def connect(
        self, host: str, port: int, username: str, password: str, timeout: float,
    ) -> Any: ...

    async def query(self, session: Any, path: str, *words: str) -> list[Row]: ...

    async def close(self, session: Any) -> None: ...


class RouterOSSession:
    """One authenticated API connection."""

    def __init__(self, api: Any, host: str) -> None:
        self.api = api
        self.host = host
        self.lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"RouterOSSession(host={self.host!r})"


class RouterOSClient:
    """
    Async RouterOS API client.

    Usage:
        client = RouterOSClient()
        session = await client.connect("10.0.0.1", 8728, "admin", "secret", 15)
        rows = await client.query(session, "/interface/print", "?running=true")
        await client.close(session)
    """

    async def connect(
        self, host: str, port: int, username: str, password: str, timeout: float,
    ) -> RouterOSSession:
        try:
            api = await asyncio.to_thread(
                librouteros.connect,
                host=host,
                username=username,
                password=password,
                port=port,
                timeout=timeout,
            )
        except (LibRouterosError, OSError) as e:
            raise ConnectFailure(f"{host}:{port}: {str(e) or type(e).__name__}") from e
        return RouterOSSession(api, host)

    async def query(self, session: RouterOSSession, path: str, *words: str) -> list[Row]:
        """Run one API command and return every reply row."""

        def run() -> list[Row]:
            return list(session.api.rawCmd(path, *words))

        async with session.lock:
            try:
                return await asyncio.to_thread(run)
            except (LibRouterosError, OSError, ValueError) as e:
                # ValueError covers undecodable reply words
                raise QueryFailure(f"{path}: {str(e) or type(e).__name__}") from e

    async def close(self, session: RouterOSSession) -> None:
        """Close the socket. Errors are logged and ignored."""
        try:
            await asyncio.to_thread(session.api.close)
        except (LibRouterosError, OSError) as e:
            logger.debug("Ignoring close error for %s: %s", session.host, e)

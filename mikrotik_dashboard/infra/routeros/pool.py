"""Per-device RouterOS session pool.

Holds at most one live session per device id. Every acquire/release for a
given id runs under that id's asyncio.Lock, so two concurrent acquires can
never both perform a handshake for the same device. Different ids never
contend with each other.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from mikrotik_dashboard.infra.observability.metrics import record_handshake, update_pool_size
from mikrotik_dashboard.infra.routeros.connection import ConnectionParams, RouterOSConnection
from mikrotik_dashboard.infra.routeros.exceptions import DeviceConnectionError, RouterOSError

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[str, ConnectionParams], RouterOSConnection]


class ConnectionPool:
    """Owns the device id -> session map.

    Example:
        pool = ConnectionPool(connect_timeout_seconds=5.0)
        connection = await pool.acquire("dev-1", params)
        ...
        await pool.release("dev-1")
    """

    def __init__(
        self,
        connect_timeout_seconds: float = 5.0,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        """Initialize an empty pool.

        Args:
            connect_timeout_seconds: Upper bound for one handshake (held under the device lock)
            connection_factory: Builds a session object for (device_id, params)
        """
        self.connect_timeout_seconds = connect_timeout_seconds
        self._factory: ConnectionFactory = connection_factory or (
            lambda device_id, params: RouterOSConnection(device_id, params)
        )

        self._connections: dict[str, RouterOSConnection] = {}
        # device id -> (lock, number of holders and waiters)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

        self._total_handshakes = 0
        self._failed_handshakes = 0

    @classmethod
    def from_settings(cls, settings: Any) -> "ConnectionPool":
        """Build a pool whose sessions follow the RouterOS settings."""

        def factory(device_id: str, params: ConnectionParams) -> RouterOSConnection:
            return RouterOSConnection(
                device_id,
                params,
                timeout_seconds=settings.routeros_connect_timeout_seconds,
                verify_ssl=settings.routeros_verify_ssl,
                idle_expiry_seconds=settings.routeros_session_idle_seconds,
            )

        return cls(
            connect_timeout_seconds=settings.routeros_connect_timeout_seconds,
            connection_factory=factory,
        )

    @asynccontextmanager
    async def _device_lock(self, device_id: str) -> AsyncIterator[None]:
        """Hold the device's lock; the lock is dropped once nobody holds or waits on it."""
        lock, users = self._locks.get(device_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[device_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[device_id]
            if users == 1:
                del self._locks[device_id]
            else:
                self._locks[device_id] = (lock, users - 1)

    async def acquire(self, device_id: str, params: ConnectionParams) -> RouterOSConnection:
        """Return a live session for the device, creating or re-establishing it.

        Args:
            device_id: Device identifier (pool key)
            params: Connection parameters used for a new or stale session

        Returns:
            Live session owned by the pool

        Raises:
            DeviceConnectionError: Handshake failed or timed out. A stale entry
                that fails to re-establish is removed; a new one is never stored.
        """
        async with self._device_lock(device_id):
            connection = self._connections.get(device_id)

            if connection is not None and connection.alive:
                logger.debug("Reusing pooled session", extra={"device_id": device_id})
                return connection

            if connection is not None:
                logger.info(
                    "Pooled session is stale, re-establishing",
                    extra={"device_id": device_id},
                )
                try:
                    await self._handshake(device_id, connection, params)
                except DeviceConnectionError:
                    self._connections.pop(device_id, None)
                    update_pool_size(len(self._connections))
                    raise
                return connection

            connection = self._factory(device_id, params)
            await self._handshake(device_id, connection, params)
            self._connections[device_id] = connection
            update_pool_size(len(self._connections))
            return connection

    async def _handshake(
        self,
        device_id: str,
        connection: RouterOSConnection,
        params: ConnectionParams,
    ) -> None:
        self._total_handshakes += 1
        try:
            await asyncio.wait_for(
                connection.establish(params),
                timeout=self.connect_timeout_seconds,
            )
        except TimeoutError as e:
            self._failed_handshakes += 1
            record_handshake(success=False)
            await connection.close()
            raise DeviceConnectionError(
                device_id,
                f"handshake timed out after {self.connect_timeout_seconds}s",
            ) from e
        except RouterOSError as e:
            self._failed_handshakes += 1
            record_handshake(success=False)
            await connection.close()
            raise DeviceConnectionError(device_id, str(e)) from e

        record_handshake(success=True)

    async def release(self, device_id: str) -> None:
        """Remove and close the pooled session for a device. No-op if absent."""
        async with self._device_lock(device_id):
            connection = self._connections.pop(device_id, None)
            if connection is None:
                return

            update_pool_size(len(self._connections))
            try:
                await connection.close()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close RouterOS session", exc_info=True)

            logger.info("Released pooled session", extra={"device_id": device_id})

    async def close_all(self) -> None:
        """Release every pooled session (shutdown)."""
        for device_id in list(self._connections):
            await self.release(device_id)

    def get(self, device_id: str) -> RouterOSConnection | None:
        return self._connections.get(device_id)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def get_stats(self) -> dict[str, int]:
        """Get pool statistics."""
        return {
            "pooled_connections": len(self._connections),
            "total_handshakes": self._total_handshakes,
            "failed_handshakes": self._failed_handshakes,
        }


__all__ = ["ConnectionFactory", "ConnectionPool"]

"""Shared pytest fixtures.

Key goals:
- Prevent global singletons (settings, DB session manager) from leaking
  state across tests.
- Provide a file-backed SQLite registry for tests that need persistence.
- Provide in-memory fake RouterOS sessions for pool and connect-flow tests.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest
from cryptography.fernet import Fernet

from mikrotik_dashboard.config import Settings, set_settings
from mikrotik_dashboard.domain.services.device import DeviceRegistry
from mikrotik_dashboard.infra.db.session import DatabaseSessionManager, reset_session_manager
from mikrotik_dashboard.infra.routeros.connection import ConnectionParams

RESOURCE_ROW = {
    "version": "7.10.1 (stable)",
    "board-name": "RB4011iGS+",
    "uptime": "2w1d3h42m10s",
    "cpu-load": "3",
}


@pytest.fixture(autouse=True)
def _reset_global_singletons() -> None:
    """Ensure global singletons do not leak between tests."""
    set_settings(None)
    reset_session_manager()
    yield
    set_settings(None)
    reset_session_manager()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Lab settings backed by a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'dashboard.db'}",
        encryption_key=Fernet.generate_key().decode(),
        routeros_connect_timeout_seconds=0.5,
        routeros_probe_timeout_seconds=0.5,
    )


@pytest.fixture
async def session_manager(settings: Settings) -> DatabaseSessionManager:
    """Initialized session manager with all tables created."""
    manager = DatabaseSessionManager(settings)
    await manager.init()
    await manager.create_all()
    yield manager
    await manager.close()


@pytest.fixture
def registry(session_manager: DatabaseSessionManager, settings: Settings) -> DeviceRegistry:
    return DeviceRegistry(session_manager, settings)


class FakeConnection:
    """Stand-in for RouterOSConnection that never touches the network."""

    def __init__(self, factory: FakeConnectionFactory, device_id: str, params: ConnectionParams):
        self.factory = factory
        self.device_id = device_id
        self.params = params
        self.establish_calls = 0
        self.close_calls = 0
        self.get_calls: list[str] = []
        self._alive = False

    @property
    def alive(self) -> bool:
        return self._alive

    def mark_stale(self) -> None:
        self._alive = False

    async def establish(self, params: ConnectionParams | None = None) -> None:
        self.establish_calls += 1
        if params is not None:
            self.params = params
        if self.factory.establish_delay:
            await asyncio.sleep(self.factory.establish_delay)
        if self.factory.establish_error is not None:
            raise self.factory.establish_error
        self._alive = True

    async def close(self) -> None:
        self.close_calls += 1
        self._alive = False

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        self.get_calls.append(path)
        if self.factory.get_delay:
            await asyncio.sleep(self.factory.get_delay)
        if self.factory.get_error is not None:
            raise self.factory.get_error
        return self.factory.resource


class FakeConnectionFactory:
    """Connection factory for ConnectionPool that records every session it builds.

    Behaviour of the sessions is steered through the attributes below.
    """

    def __init__(self) -> None:
        self.created: list[FakeConnection] = []
        self.establish_error: Exception | None = None
        self.establish_delay = 0.0
        self.get_error: Exception | None = None
        self.get_delay = 0.0
        self.resource: Any = dict(RESOURCE_ROW)

    def __call__(self, device_id: str, params: ConnectionParams) -> FakeConnection:
        connection = FakeConnection(self, device_id, params)
        self.created.append(connection)
        return connection

    @property
    def handshakes(self) -> int:
        return sum(conn.establish_calls for conn in self.created)


@pytest.fixture
def fake_factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def params() -> ConnectionParams:
    return ConnectionParams(
        host="192.168.88.1",
        port=8728,
        username="admin",
        password="secret",
    )

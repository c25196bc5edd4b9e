"""Service wiring and the HTTP server.

``build_services`` constructs the registry, connection pool, prober, event
bus and connect orchestrator from settings; ``DashboardServer`` serves the
FastAPI app with uvicorn. Startup creates the tables; shutdown closes every
pooled RouterOS session and disposes the database engine.
"""

import logging
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI

from mikrotik_dashboard.api.http import create_http_app
from mikrotik_dashboard.config import Settings
from mikrotik_dashboard.domain.services.connect import ConnectOrchestrator
from mikrotik_dashboard.domain.services.device import DeviceRegistry
from mikrotik_dashboard.domain.services.prober import DeviceProber
from mikrotik_dashboard.infra.db.session import DatabaseSessionManager
from mikrotik_dashboard.infra.event_bus import EventBus
from mikrotik_dashboard.infra.routeros.pool import ConnectionPool

logger = logging.getLogger(__name__)


@dataclass
class DashboardServices:
    """Everything the HTTP layer needs, built once per process."""

    settings: Settings
    session_manager: DatabaseSessionManager
    registry: DeviceRegistry
    pool: ConnectionPool
    prober: DeviceProber
    bus: EventBus
    orchestrator: ConnectOrchestrator

    async def startup(self) -> None:
        """Open the database and create missing tables."""
        if not self.session_manager.initialized:
            await self.session_manager.init()
        await self.session_manager.create_all()
        logger.info("Dashboard services started")

    async def shutdown(self) -> None:
        """Close observers, pooled sessions and the database engine."""
        self.bus.close()
        await self.pool.close_all()
        await self.session_manager.close()
        logger.info("Dashboard services stopped")


def build_services(
    settings: Settings,
    session_manager: DatabaseSessionManager | None = None,
    pool: ConnectionPool | None = None,
) -> DashboardServices:
    """Construct the dashboard services from settings.

    Args:
        settings: Application settings
        session_manager: Database session manager (a new one when omitted)
        pool: Connection pool (built from settings when omitted)
    """
    if session_manager is None:
        session_manager = DatabaseSessionManager(settings)
    registry = DeviceRegistry(session_manager, settings)
    if pool is None:
        pool = ConnectionPool.from_settings(settings)
    prober = DeviceProber(timeout_seconds=settings.routeros_probe_timeout_seconds)
    bus = EventBus(
        max_subscribers=settings.event_bus_max_subscribers,
        queue_size=settings.event_bus_queue_size,
    )
    orchestrator = ConnectOrchestrator(registry, pool, prober, bus)

    return DashboardServices(
        settings=settings,
        session_manager=session_manager,
        registry=registry,
        pool=pool,
        prober=prober,
        bus=bus,
        orchestrator=orchestrator,
    )


class DashboardServer:
    """HTTP server for the dashboard API.

    Example:
        server = DashboardServer(settings)
        await server.start()  # returns after SIGINT/SIGTERM
    """

    def __init__(self, settings: Settings, services: DashboardServices | None = None) -> None:
        self.settings = settings
        self.services = services or build_services(settings)
        self.app: FastAPI = create_http_app(settings, self.services)
        self._server: uvicorn.Server | None = None

    def _build_config(self) -> uvicorn.Config:
        return uvicorn.Config(
            self.app,
            host=self.settings.http_host,
            port=self.settings.http_port,
            log_level=self.settings.log_level.lower(),
            log_config=None,
            access_log=self.settings.debug,
        )

    async def start(self) -> None:
        """Serve until uvicorn receives a shutdown signal."""
        self._server = uvicorn.Server(self._build_config())
        logger.info(
            "Starting HTTP server",
            extra={"host": self.settings.http_host, "port": self.settings.http_port},
        )
        await self._server.serve()
        logger.info("HTTP server stopped")

    def stop(self) -> None:
        """Ask a running server to exit."""
        if self._server is not None:
            self._server.should_exit = True

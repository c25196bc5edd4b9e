"""HTTP API for the MikroTik dashboard.

Device CRUD, the connect action and the live event stream consumed by the
browser UI, plus health and Prometheus endpoints.
"""

import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import ValidationError
from sse_starlette import EventSourceResponse

from mikrotik_dashboard import __version__
from mikrotik_dashboard.config import Settings
from mikrotik_dashboard.domain.exceptions import DeviceNotFoundError, RegistryError
from mikrotik_dashboard.domain.models import DeviceCreate, DeviceUpdate
from mikrotik_dashboard.domain.results import ConnectErrorKind, is_ok
from mikrotik_dashboard.infra.event_bus import SubscriberLimitError
from mikrotik_dashboard.infra.observability import get_metrics_text
from mikrotik_dashboard.infra.observability.logging import correlation_scope
from mikrotik_dashboard.infra.observability.metrics import (
    record_sse_connection_end,
    record_sse_connection_start,
)

if TYPE_CHECKING:
    from mikrotik_dashboard.server import DashboardServices

logger = logging.getLogger(__name__)

REQUIRED_DEVICE_FIELDS = ("name", "ip", "username", "password")

# Connect failure kind -> (status code, public error message)
_CONNECT_ERRORS: dict[ConnectErrorKind, tuple[int, str]] = {
    ConnectErrorKind.NOT_FOUND: (status.HTTP_404_NOT_FOUND, "device not found"),
    ConnectErrorKind.CONNECTION: (status.HTTP_502_BAD_GATEWAY, "connection failed"),
    ConnectErrorKind.PROBE: (status.HTTP_502_BAD_GATEWAY, "connection failed"),
    ConnectErrorKind.REGISTRY: (status.HTTP_500_INTERNAL_SERVER_ERROR, "registry error"),
}


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def _db_error() -> JSONResponse:
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "DB error")


def _not_found() -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "device not found")


async def _read_json_object(request: Request) -> dict[str, Any] | None:
    try:
        payload = await request.json()
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


def _validation_error(e: ValidationError) -> JSONResponse:
    details = e.errors(include_url=False, include_context=False, include_input=False)
    return _error(status.HTTP_400_BAD_REQUEST, "Invalid fields", details=details)


def create_device_router(settings: Settings, services: "DashboardServices") -> APIRouter:
    """Routes under ``settings.api_base_path``.

    Args:
        settings: Application settings
        services: Registry, pool, event bus and connect orchestrator
    """
    router = APIRouter(prefix=settings.api_base_path)

    registry = services.registry
    pool = services.pool
    bus = services.bus
    orchestrator = services.orchestrator

    @router.get("/devices")
    async def list_devices() -> Response:
        try:
            devices = await registry.list_devices()
        except RegistryError:
            return _db_error()
        return JSONResponse([device.to_wire() for device in devices])

    @router.post("/devices")
    async def create_device(request: Request) -> Response:
        payload = await _read_json_object(request)
        if payload is None or any(not payload.get(name) for name in REQUIRED_DEVICE_FIELDS):
            return _error(status.HTTP_400_BAD_REQUEST, "Missing fields")

        if payload.get("port") in (None, ""):
            payload["port"] = settings.routeros_default_port

        try:
            data = DeviceCreate.model_validate(payload)
        except ValidationError as e:
            return _validation_error(e)

        try:
            device = await registry.insert_device(data)
        except RegistryError:
            return _db_error()
        return JSONResponse(device.to_wire(), status_code=status.HTTP_201_CREATED)

    @router.put("/devices/{device_id}")
    async def update_device(device_id: str, request: Request) -> Response:
        payload = await _read_json_object(request)
        if payload is None:
            return _error(status.HTTP_400_BAD_REQUEST, "Invalid fields")

        try:
            updates = DeviceUpdate.model_validate(payload)
        except ValidationError as e:
            return _validation_error(e)

        try:
            device = await registry.update_device(device_id, updates)
        except DeviceNotFoundError:
            return _not_found()
        except RegistryError:
            return _db_error()

        if updates.touches_connection():
            await pool.release(device_id)
        return JSONResponse(device.to_wire())

    @router.delete("/devices/{device_id}")
    async def delete_device(device_id: str) -> Response:
        try:
            await registry.delete_device(device_id)
        except DeviceNotFoundError:
            return _not_found()
        except RegistryError:
            return _db_error()

        await pool.release(device_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/devices/{device_id}/connect")
    async def connect_device(device_id: str) -> Response:
        result = await orchestrator.connect(device_id)
        if is_ok(result):
            return JSONResponse(result.value.to_wire())

        status_code, message = _CONNECT_ERRORS[result.error.kind]
        return _error(status_code, message)

    @router.get("/events")
    async def events(request: Request) -> Response:
        client = request.client.host if request.client else ""
        try:
            subscription = await bus.subscribe(client_id=client)
        except SubscriberLimitError as e:
            logger.warning(str(e))
            return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "too many event subscribers")

        async def event_generator() -> AsyncIterator[dict[str, str]]:
            record_sse_connection_start()
            started = time.monotonic()
            try:
                async for event in bus.stream(subscription):
                    yield {"id": event.id, "data": json.dumps(event.to_wire())}
            finally:
                bus.unsubscribe(subscription)
                record_sse_connection_end(time.monotonic() - started)
                logger.info(
                    "Event stream closed",
                    extra={"subscription_id": subscription.subscription_id},
                )

        return EventSourceResponse(
            event_generator(),
            ping=settings.sse_ping_interval_seconds,
            headers={"Cache-Control": "no-cache"},
        )

    return router


def create_http_app(settings: Settings, services: "DashboardServices") -> FastAPI:
    """Create FastAPI application for the dashboard.

    Args:
        settings: Application settings
        services: Wired dashboard services

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.startup()
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(
        title="MikroTik Dashboard",
        description="Device registry, connect action and live events for RouterOS devices",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next: Any) -> Any:
        """Run the request under the caller's correlation ID (or a fresh one)."""
        with correlation_scope(request.headers.get("X-Correlation-ID")) as correlation_id:
            response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Service health status; degraded when the device database is unreachable."""
        database_ok = await services.session_manager.ping()
        return {
            "status": "healthy" if database_ok else "degraded",
            "database": "ok" if database_ok else "unavailable",
            "environment": settings.environment,
            "pooled_connections": len(services.pool),
            "event_subscribers": services.bus.subscriber_count,
        }

    @app.get("/metrics")
    async def metrics() -> PlainTextResponse:
        """Prometheus metrics endpoint."""
        return PlainTextResponse(get_metrics_text())

    app.include_router(create_device_router(settings, services))
    return app


__all__ = ["create_device_router", "create_http_app"]

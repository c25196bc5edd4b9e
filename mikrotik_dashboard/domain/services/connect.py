"""Connect workflow.

Lookup -> Announce -> Acquire -> Probe -> Success | Failure, in that order,
for one explicit "connect to device" request. Every step yields an explicit
``Ok``/``Err`` and the workflow always returns a result instead of raising.
"""

import logging
import time
from datetime import UTC, datetime

from mikrotik_dashboard.domain.exceptions import DeviceNotFoundError, RegistryError
from mikrotik_dashboard.domain.models import (
    ConnectSuccess,
    Device,
    DeviceStatus,
    Event,
    EventLevel,
    ProbeResult,
)
from mikrotik_dashboard.domain.results import (
    ConnectErrorKind,
    ConnectFailure,
    Err,
    Ok,
    Result,
)
from mikrotik_dashboard.domain.services.device import DeviceRegistry
from mikrotik_dashboard.domain.services.prober import DeviceProber
from mikrotik_dashboard.infra.event_bus import EventBus
from mikrotik_dashboard.infra.observability.metrics import record_connect_attempt
from mikrotik_dashboard.infra.routeros.connection import ConnectionParams, RouterOSConnection
from mikrotik_dashboard.infra.routeros.exceptions import DeviceConnectionError, DeviceProbeError
from mikrotik_dashboard.infra.routeros.pool import ConnectionPool

logger = logging.getLogger(__name__)

ConnectResult = Result[ConnectSuccess, ConnectFailure]


def connection_params(device: Device) -> ConnectionParams:
    """Connection parameters for a registry record."""
    return ConnectionParams(
        host=device.ip,
        port=device.port,
        username=device.username,
        password=device.password,
        use_tls=device.use_https,
    )


class ConnectOrchestrator:
    """Ties registry, pool, prober and event bus together for one connect request.

    Example:
        orchestrator = ConnectOrchestrator(registry, pool, prober, bus)
        result = await orchestrator.connect(device_id)
        if is_ok(result):
            return result.value.to_wire()
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        pool: ConnectionPool,
        prober: DeviceProber,
        bus: EventBus,
    ) -> None:
        self.registry = registry
        self.pool = pool
        self.prober = prober
        self.bus = bus

    async def connect(self, device_id: str) -> ConnectResult:
        """Run the connect workflow for one device.

        Args:
            device_id: Registry id of the device

        Returns:
            ``Ok(ConnectSuccess)`` or ``Err(ConnectFailure)``. A ``not_found``
            or ``registry`` failure at lookup publishes no events.
        """
        start = time.perf_counter()
        try:
            result = await self._run(device_id)
        except Exception as e:
            logger.exception(
                "Connect workflow crashed",
                extra={"device_id": device_id},
            )
            result = Err(ConnectFailure(ConnectErrorKind.CONNECTION, str(e), device_id))

        outcome = "success" if isinstance(result, Ok) else result.error.kind.value
        record_connect_attempt(outcome, time.perf_counter() - start)
        return result

    async def _run(self, device_id: str) -> ConnectResult:
        # Lookup
        lookup = await self._lookup(device_id)
        if isinstance(lookup, Err):
            return lookup
        device = lookup.value

        # Announce
        self.bus.publish(
            Event.log(
                f"Connecting to {device.display_name}",
                device_id=device.id,
                device_name=device.display_name,
            )
        )

        try:
            # Acquire
            acquired = await self._acquire(device)
            if isinstance(acquired, Err):
                return await self._fail(device, acquired.error)

            # Probe
            probed = await self._probe(device, acquired.value)
            if isinstance(probed, Err):
                return await self._fail(device, probed.error)

            return await self._succeed(device, probed.value)
        except Exception as e:
            logger.exception("Connect workflow crashed", extra={"device_id": device.id})
            await self.pool.release(device.id)
            return await self._fail(
                device, ConnectFailure(ConnectErrorKind.CONNECTION, str(e), device.id)
            )

    async def _lookup(self, device_id: str) -> Result[Device, ConnectFailure]:
        try:
            return Ok(await self.registry.get_device(device_id))
        except DeviceNotFoundError as e:
            logger.info("Connect requested for unknown device", extra={"device_id": device_id})
            return Err(ConnectFailure(ConnectErrorKind.NOT_FOUND, e.message, device_id))
        except RegistryError as e:
            return Err(ConnectFailure(ConnectErrorKind.REGISTRY, e.message, device_id))

    async def _acquire(self, device: Device) -> Result[RouterOSConnection, ConnectFailure]:
        try:
            return Ok(await self.pool.acquire(device.id, connection_params(device)))
        except DeviceConnectionError as e:
            return Err(ConnectFailure(ConnectErrorKind.CONNECTION, e.reason, device.id))

    async def _probe(
        self, device: Device, connection: RouterOSConnection
    ) -> Result[ProbeResult, ConnectFailure]:
        try:
            return Ok(await self.prober.probe(connection))
        except DeviceProbeError as e:
            # The session can no longer be trusted
            await self.pool.release(device.id)
            return Err(ConnectFailure(ConnectErrorKind.PROBE, e.reason, device.id))

    async def _succeed(self, device: Device, probe: ProbeResult) -> ConnectResult:
        last_seen = datetime.now(UTC)
        try:
            await self.registry.record_status(
                device.id,
                DeviceStatus.ONLINE,
                last_seen=last_seen,
                version=probe.version,
                board=probe.board_name,
                uptime_seconds=probe.uptime_seconds,
            )
        except (DeviceNotFoundError, RegistryError) as e:
            # Device deleted or registry unwritable after the probe
            failure = ConnectFailure(
                ConnectErrorKind.REGISTRY, getattr(e, "message", str(e)), device.id
            )
            await self.pool.release(device.id)
            return await self._fail(device, failure)

        self.bus.publish(
            Event.alert(
                "Connection successful",
                device_id=device.id,
                device_name=device.display_name,
            )
        )
        self.bus.publish(
            Event.log(
                f"Connected to {device.display_name}",
                device_id=device.id,
                device_name=device.display_name,
            )
        )

        logger.info(
            "Device connected",
            extra={"device_id": device.id, "device_name": device.name, "outcome": "success"},
        )
        return Ok(
            ConnectSuccess(
                version=probe.version,
                board=probe.board_name,
                last_seen=last_seen,
            )
        )

    async def _fail(self, device: Device, failure: ConnectFailure) -> ConnectResult:
        try:
            await self.registry.record_status(device.id, DeviceStatus.OFFLINE)
        except (DeviceNotFoundError, RegistryError):
            logger.warning(
                "Could not mark device offline",
                extra={"device_id": device.id},
                exc_info=True,
            )

        self.bus.publish(
            Event.alert(
                f"Connection to {device.display_name} failed",
                level=EventLevel.ERROR,
                device_id=device.id,
                device_name=device.display_name,
            )
        )
        self.bus.publish(
            Event.log(
                f"Connection to {device.display_name} failed: {failure.message}",
                level=EventLevel.ERROR,
                device_id=device.id,
                device_name=device.display_name,
            )
        )

        logger.warning(
            "Device connect failed",
            extra={
                "device_id": device.id,
                "device_name": device.name,
                "outcome": "failure",
                "error_kind": failure.kind.value,
            },
        )
        return Err(failure)

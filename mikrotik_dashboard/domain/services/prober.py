"""Device prober.

One read-only ``/system/resource`` round-trip per call, normalized into a
ProbeResult. No retries; a failed probe means the session can no longer be
trusted and the caller releases it from the pool.
"""

import asyncio
import logging
from typing import Any

from mikrotik_dashboard.domain.models import ProbeResult
from mikrotik_dashboard.domain.utils import parse_routeros_uptime
from mikrotik_dashboard.infra.routeros.connection import RouterOSConnection
from mikrotik_dashboard.infra.routeros.exceptions import DeviceProbeError, RouterOSError

logger = logging.getLogger(__name__)

RESOURCE_PATH = "/rest/system/resource"


class DeviceProber:
    """Runs the status query against an established session.

    Example:
        prober = DeviceProber(timeout_seconds=5.0)
        result = await prober.probe(connection)
        print(result.version, result.board_name)
    """

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        self.timeout_seconds = timeout_seconds

    async def probe(self, connection: RouterOSConnection) -> ProbeResult:
        """Query system resource and extract version and board name.

        Args:
            connection: Live session from the connection pool

        Returns:
            Normalized probe result

        Raises:
            DeviceProbeError: Transport error, timeout, or a response that is
                not exactly one row with string version and board-name
        """
        device_id = connection.device_id
        try:
            data = await asyncio.wait_for(
                connection.get(RESOURCE_PATH),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            raise DeviceProbeError(
                device_id, f"status query timed out after {self.timeout_seconds}s"
            ) from e
        except RouterOSError as e:
            raise DeviceProbeError(device_id, str(e)) from e

        row = self._single_row(device_id, data)

        version = row.get("version")
        board_name = row.get("board-name")
        if not isinstance(version, str) or not version:
            raise DeviceProbeError(device_id, "response is missing 'version'")
        if not isinstance(board_name, str) or not board_name:
            raise DeviceProbeError(device_id, "response is missing 'board-name'")

        uptime = row.get("uptime")
        uptime_seconds = parse_routeros_uptime(uptime) if isinstance(uptime, str) else None

        logger.debug(
            "Probe succeeded",
            extra={"device_id": device_id},
        )
        return ProbeResult(
            version=version,
            board_name=board_name,
            uptime_seconds=uptime_seconds,
        )

    @staticmethod
    def _single_row(device_id: str, data: Any) -> dict[str, Any]:
        # REST returns an object; the API protocol style returns a list of rows
        if isinstance(data, dict):
            if not data:
                raise DeviceProbeError(device_id, "empty response")
            return data
        if isinstance(data, list):
            if len(data) != 1:
                raise DeviceProbeError(
                    device_id, f"expected exactly one row, got {len(data)}"
                )
            if not isinstance(data[0], dict):
                raise DeviceProbeError(device_id, "malformed row")
            return data[0]
        raise DeviceProbeError(device_id, f"unexpected response type {type(data).__name__}")

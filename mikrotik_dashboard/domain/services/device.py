"""Device registry.

CRUD over the ``mikrotik_devices`` table plus the status write used by the
connect workflow. Each call runs in its own session, so single-row reads and
updates are atomic. Storage failures surface as RegistryError.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mikrotik_dashboard.config import Settings
from mikrotik_dashboard.domain.exceptions import DeviceNotFoundError, RegistryError
from mikrotik_dashboard.domain.models import Device, DeviceCreate, DeviceStatus, DeviceUpdate
from mikrotik_dashboard.infra.db.models import MikrotikDevice
from mikrotik_dashboard.infra.db.session import DatabaseSessionManager
from mikrotik_dashboard.security.crypto import CredentialEncryption, DecryptionError

logger = logging.getLogger(__name__)

# DeviceUpdate field -> column
_COLUMN_FOR_FIELD = {
    "name": "name",
    "ip": "ip_address",
    "port": "port",
    "username": "username",
    "use_https": "use_https",
}


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class DeviceRegistry:
    """Persisted device records.

    Example:
        registry = DeviceRegistry(session_manager, settings)
        device = await registry.insert_device(DeviceCreate(
            name="core-router",
            ip="192.168.88.1",
            username="admin",
            password="secret",
        ))
        await registry.record_status(device.id, DeviceStatus.OFFLINE)
    """

    def __init__(
        self,
        session_manager: DatabaseSessionManager,
        settings: Settings,
        crypto: CredentialEncryption | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            session_manager: Initialized database session manager
            settings: Application settings
            crypto: Secret encryption; built from settings when omitted
        """
        self.session_manager = session_manager
        self.settings = settings
        self.crypto = crypto or CredentialEncryption(
            settings.encryption_key,
            settings.environment,
        )

    @asynccontextmanager
    async def _session(
        self, operation: str, device_id: str | None = None
    ) -> AsyncIterator[AsyncSession]:
        try:
            async with self.session_manager.session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(
                f"Registry {operation} failed",
                extra={"device_id": device_id},
                exc_info=True,
            )
            raise RegistryError(
                f"Registry {operation} failed: {type(e).__name__}",
                context={"device_id": device_id, "operation": operation},
            ) from e

    async def _get_row(self, session: AsyncSession, device_id: str) -> MikrotikDevice:
        row = await session.get(MikrotikDevice, device_id)
        if row is None:
            raise DeviceNotFoundError(
                f"Device '{device_id}' not found",
                context={"device_id": device_id},
            )
        return row

    def _to_domain(self, row: MikrotikDevice) -> Device:
        try:
            password = self.crypto.decrypt(row.password_encrypted)
        except DecryptionError:
            logger.warning(
                "Stored password could not be decrypted",
                extra={"device_id": row.id},
            )
            password = ""

        return Device(
            id=row.id,
            name=row.name,
            ip=row.ip_address,
            port=row.port,
            username=row.username,
            password=password,
            use_https=row.use_https,
            status=DeviceStatus(row.status),
            last_seen=_as_utc(row.last_seen),
            version=row.version,
            board=row.board,
            uptime_seconds=row.uptime_seconds,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    async def list_devices(self) -> list[Device]:
        """List all devices ordered by name."""
        async with self._session("list") as session:
            result = await session.execute(
                select(MikrotikDevice).order_by(MikrotikDevice.name, MikrotikDevice.id)
            )
            return [self._to_domain(row) for row in result.scalars().all()]

    async def get_device(self, device_id: str) -> Device:
        """Get device by ID.

        Raises:
            DeviceNotFoundError: If device doesn't exist
            RegistryError: On storage failure
        """
        async with self._session("lookup", device_id) as session:
            row = await self._get_row(session, device_id)
            return self._to_domain(row)

    async def insert_device(self, data: DeviceCreate) -> Device:
        """Create a device record with a fresh id and offline status.

        Args:
            data: Validated device fields

        Returns:
            Created device
        """
        device_id = uuid.uuid4().hex
        async with self._session("insert", device_id) as session:
            row = MikrotikDevice(
                id=device_id,
                name=data.name,
                ip_address=data.ip,
                port=data.port,
                username=data.username,
                password_encrypted=self.crypto.encrypt(data.password),
                use_https=data.use_https,
                status=DeviceStatus.OFFLINE.value,
            )
            session.add(row)
            await session.flush()
            await session.refresh(row)
            device = self._to_domain(row)

        logger.info(
            "Registered device",
            extra={"device_id": device.id, "device_name": device.name},
        )
        return device

    async def update_device(self, device_id: str, updates: DeviceUpdate) -> Device:
        """Apply a partial update.

        Args:
            device_id: Device identifier
            updates: Fields to change; unset fields are left untouched

        Returns:
            Updated device

        Raises:
            DeviceNotFoundError: If device doesn't exist
            RegistryError: On storage failure
        """
        update_data = updates.model_dump(exclude_unset=True)
        async with self._session("update", device_id) as session:
            row = await self._get_row(session, device_id)

            for field, value in update_data.items():
                if value is None:
                    continue
                if field == "password":
                    row.password_encrypted = self.crypto.encrypt(value)
                else:
                    setattr(row, _COLUMN_FOR_FIELD[field], value)

            await session.flush()
            await session.refresh(row)
            device = self._to_domain(row)

        logger.info(
            "Updated device",
            extra={"device_id": device_id, "device_name": device.name},
        )
        return device

    async def delete_device(self, device_id: str) -> None:
        """Delete a device record.

        Raises:
            DeviceNotFoundError: If device doesn't exist
            RegistryError: On storage failure
        """
        async with self._session("delete", device_id) as session:
            row = await self._get_row(session, device_id)
            await session.delete(row)

        logger.info("Deleted device", extra={"device_id": device_id})

    async def record_status(
        self,
        device_id: str,
        status: DeviceStatus,
        *,
        last_seen: datetime | None = None,
        version: str | None = None,
        board: str | None = None,
        uptime_seconds: int | None = None,
    ) -> Device:
        """Store the outcome of a connect attempt.

        Only ``status`` and the keyword fields that are given are written; an
        offline update therefore keeps the last known version, board and
        last-seen time.

        Raises:
            DeviceNotFoundError: If device doesn't exist
            RegistryError: On storage failure
        """
        async with self._session("status update", device_id) as session:
            row = await self._get_row(session, device_id)
            row.status = DeviceStatus(status).value
            if last_seen is not None:
                row.last_seen = last_seen
            if version is not None:
                row.version = version
            if board is not None:
                row.board = board
            if uptime_seconds is not None:
                row.uptime_seconds = uptime_seconds

            await session.flush()
            await session.refresh(row)
            return self._to_domain(row)

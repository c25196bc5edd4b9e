"""Domain models for the MikroTik dashboard.

Pydantic models representing domain entities and DTOs for the service layer.
These are separate from SQLAlchemy ORM models to maintain clean separation
between domain and infrastructure layers. Every model serializes with
camelCase keys, the shape the dashboard UI consumes.
"""

import ipaddress
import re
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from mikrotik_dashboard.domain.utils import format_uptime

DEFAULT_API_PORT = 8728

_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$"
)

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _validate_host(value: str) -> str:
    value = value.strip()
    try:
        ipaddress.ip_address(value)
        return value
    except ValueError:
        pass
    if not _HOSTNAME_RE.match(value):
        raise ValueError(
            f"Invalid address: '{value}'. Must be an IPv4/IPv6 address or a host name."
        )
    return value


class DeviceStatus(str, Enum):
    """Last observed device status."""

    ONLINE = "online"
    OFFLINE = "offline"
    WARNING = "warning"


class DeviceCreate(BaseModel):
    """DTO for creating a new device."""

    model_config = _CAMEL

    name: str = Field(..., min_length=1, description="Human-friendly device name")
    ip: str = Field(..., min_length=1, description="Management address (IPv4, IPv6 or host name)")
    port: int = Field(
        default=DEFAULT_API_PORT,
        ge=1,
        le=65535,
        description="Device port. 8728 is the binary API port; the REST transport needs "
        "the www (80) or www-ssl (443) service port",
    )
    username: str = Field(..., min_length=1, description="RouterOS user")
    password: str = Field(..., min_length=1, repr=False, description="Secret (stored encrypted)")
    use_https: bool = Field(default=False, description="Use the encrypted channel")

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str) -> str:
        """Validate management address format."""
        return _validate_host(v)


class DeviceUpdate(BaseModel):
    """DTO for a partial device update. Unset fields are left untouched."""

    model_config = _CAMEL

    name: str | None = Field(default=None, min_length=1)
    ip: str | None = Field(default=None, min_length=1)
    port: int | None = Field(default=None, ge=1, le=65535)
    username: str | None = Field(default=None, min_length=1)
    password: str | None = Field(default=None, min_length=1, repr=False)
    use_https: bool | None = None

    @field_validator("ip")
    @classmethod
    def validate_ip(cls, v: str | None) -> str | None:
        """Validate management address format."""
        if v is None:
            return v
        return _validate_host(v)

    def touches_connection(self) -> bool:
        """Whether this update changes how the device is reached."""
        changed = self.model_dump(exclude_unset=True)
        return bool(changed.keys() & {"ip", "port", "username", "password", "use_https"})


class Device(BaseModel):
    """Domain model for a MikroTik device.

    ``password`` holds the decrypted secret for the connection pool and is
    never serialized.
    """

    model_config = _CAMEL

    id: str
    name: str
    ip: str
    port: int = DEFAULT_API_PORT
    username: str
    password: str = Field(default="", exclude=True, repr=False)
    use_https: bool = False

    status: DeviceStatus = DeviceStatus.OFFLINE
    last_seen: datetime | None = None
    version: str | None = None
    board: str | None = None
    uptime_seconds: int | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def uptime(self) -> str:
        """Uptime label as shown on device cards (e.g. "15d 3h 42m")."""
        return format_uptime(self.uptime_seconds)

    @property
    def display_name(self) -> str:
        """Name used in event messages; falls back to the address."""
        return self.name or self.ip

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProbeResult(BaseModel):
    """Normalized system-resource query result."""

    version: str
    board_name: str
    uptime_seconds: int | None = None


class ConnectSuccess(BaseModel):
    """Payload returned by a successful connect request."""

    model_config = _CAMEL

    status: Literal["online"] = "online"
    version: str
    board: str
    last_seen: datetime

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class EventKind(str, Enum):
    """Event record kind."""

    LOG = "log"
    ALERT = "alert"


class EventLevel(str, Enum):
    """Event severity."""

    INFO = "info"
    ERROR = "error"


class Event(BaseModel):
    """Ephemeral notification delivered to event stream observers.

    Example:
        Event.log("Connecting to core-router", device_id=device.id)
        Event.alert("Connection successful", device_id=device.id, device_name=device.name)
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: EventKind
    level: EventLevel = EventLevel.INFO
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    device_id: str | None = None
    device_name: str | None = None

    @classmethod
    def log(
        cls,
        message: str,
        level: EventLevel = EventLevel.INFO,
        device_id: str | None = None,
        device_name: str | None = None,
    ) -> "Event":
        return cls(
            type=EventKind.LOG,
            level=level,
            message=message,
            device_id=device_id,
            device_name=device_name,
        )

    @classmethod
    def alert(
        cls,
        message: str,
        level: EventLevel = EventLevel.INFO,
        device_id: str | None = None,
        device_name: str | None = None,
    ) -> "Event":
        return cls(
            type=EventKind.ALERT,
            level=level,
            message=message,
            device_id=device_id,
            device_name=device_name,
        )

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict; optional device fields are omitted when unset."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

"""SQLAlchemy ORM models for the MikroTik dashboard.

The device registry is a single table, ``mikrotik_devices``. Models work on
both SQLite (development) and PostgreSQL (production).

Design Principles:
- Domain models are kept separate (no SQLAlchemy in mikrotik_dashboard/domain/)
- All timestamps use timezone-aware datetime
- Secrets are stored only as Fernet ciphertext
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, Text, false, func, text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models.

    Provides:
    - Async attribute loading via AsyncAttrs
    - Common timestamp fields (created_at, updated_at)
    - Utility methods for dict conversion and repr
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Record creation timestamp",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        comment="Record last update timestamp",
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary.

        Returns:
            Dictionary representation of model with all column values
        """
        return {column.name: getattr(self, column.name) for column in self.__table__.columns}

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        pk_value = getattr(self, "id", None)
        return f"<{class_name}(id={pk_value})>"


class MikrotikDevice(Base):
    """Registered MikroTik device.

    ``id`` is assigned once at insert and never updated. ``status``,
    ``last_seen``, ``version``, ``board`` and ``uptime_seconds`` are written
    by the connect workflow; everything else by user edits.
    """

    __tablename__ = "mikrotik_devices"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, comment="Opaque device identifier"
    )

    name: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True, comment="Display name"
    )

    ip_address: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Management address (IPv4, IPv6 or host name)"
    )

    port: Mapped[int] = mapped_column(
        Integer, nullable=False, default=8728, server_default=text("8728"), comment="API port"
    )

    username: Mapped[str] = mapped_column(String(255), nullable=False, comment="RouterOS user")

    password_encrypted: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Fernet-encrypted secret"
    )

    use_https: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Encrypted channel flag",
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="offline",
        server_default=text("'offline'"),
        comment="Last observed status: online/offline/warning",
    )

    last_seen: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Last successful connect"
    )

    version: Mapped[str | None] = mapped_column(
        String(64), nullable=True, comment="Reported RouterOS version"
    )

    board: Mapped[str | None] = mapped_column(
        String(128), nullable=True, comment="Reported board name"
    )

    uptime_seconds: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Reported uptime in seconds"
    )

    __table_args__ = (
        CheckConstraint("port >= 1 AND port <= 65535", name="ck_mikrotik_devices_port"),
        CheckConstraint(
            "status IN ('online', 'offline', 'warning')",
            name="ck_mikrotik_devices_status",
        ),
    )

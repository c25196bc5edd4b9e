"""Domain-specific exceptions for the MikroTik dashboard.

Domain exceptions represent registry and business rule failures and are
separate from infrastructure (RouterOS transport) errors. The HTTP layer
converts them to status codes; the connect workflow converts them to
explicit error results.
"""


class DomainError(Exception):
    """Base exception for domain layer errors."""

    def __init__(self, message: str, *, context: dict | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message
            context: Additional context about the error
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)


class DeviceNotFoundError(DomainError):
    """Raised when a device id is unknown to the registry.

    Example:
        raise DeviceNotFoundError(
            "Device not found: 6f1c...",
            context={"device_id": "6f1c..."},
        )
    """

    @property
    def device_id(self) -> str | None:
        return self.context.get("device_id")


class RegistryError(DomainError):
    """Raised when the device registry's storage layer fails.

    The original storage exception is chained as ``__cause__``.
    """

    pass

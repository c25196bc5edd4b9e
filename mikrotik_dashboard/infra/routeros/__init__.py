"""RouterOS integration module.

Provides the async session, the per-device session pool and the
strongly-typed errors used to talk to MikroTik RouterOS devices:
- connection: REST API session (one per device)
- pool: per-device session pool with single-handshake guarantee
- exceptions: Strongly-typed error handling
"""

from mikrotik_dashboard.infra.routeros.connection import ConnectionParams, RouterOSConnection
from mikrotik_dashboard.infra.routeros.exceptions import (
    DeviceConnectionError,
    DeviceProbeError,
    RouterOSAuthenticationError,
    RouterOSAuthorizationError,
    RouterOSClientError,
    RouterOSConnectionError,
    RouterOSError,
    RouterOSNetworkError,
    RouterOSNotFoundError,
    RouterOSResponseError,
    RouterOSServerError,
    RouterOSTimeoutError,
    RouterOSValidationError,
)
from mikrotik_dashboard.infra.routeros.pool import ConnectionPool

__all__ = [
    # Sessions
    "ConnectionParams",
    "ConnectionPool",
    "RouterOSConnection",
    # Exceptions
    "RouterOSError",
    "RouterOSConnectionError",
    "RouterOSTimeoutError",
    "RouterOSNetworkError",
    "RouterOSClientError",
    "RouterOSAuthenticationError",
    "RouterOSAuthorizationError",
    "RouterOSNotFoundError",
    "RouterOSValidationError",
    "RouterOSServerError",
    "RouterOSResponseError",
    "DeviceConnectionError",
    "DeviceProbeError",
]

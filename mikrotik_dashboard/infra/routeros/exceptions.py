"""RouterOS client exceptions.

Strongly-typed exceptions for the RouterOS transport, the connection pool
and the device prober. Maps low-level network/HTTP errors to domain-level
exceptions.

Exception hierarchy:
- RouterOSError (base)
  - RouterOSConnectionError (network/timeout)
    - RouterOSTimeoutError
    - RouterOSNetworkError
  - RouterOSClientError (4xx responses)
    - RouterOSAuthenticationError (401)
    - RouterOSAuthorizationError (403)
    - RouterOSNotFoundError (404)
    - RouterOSValidationError (400, 422)
  - RouterOSServerError (5xx responses)
  - RouterOSResponseError (unparseable body)
  - DeviceConnectionError (pool could not establish a session)
  - DeviceProbeError (established session failed the status query)
"""


class RouterOSError(Exception):
    """Base exception for all RouterOS client errors."""

    pass


# Connection errors
class RouterOSConnectionError(RouterOSError):
    """Base exception for connection/network failures."""

    pass


class RouterOSTimeoutError(RouterOSConnectionError):
    """Raised when request times out."""

    pass


class RouterOSNetworkError(RouterOSConnectionError):
    """Raised for network connectivity issues (DNS, TCP connection, etc)."""

    pass


# Client errors (4xx)
class RouterOSClientError(RouterOSError):
    """Base exception for client errors (HTTP 4xx).

    Attributes:
        status_code: HTTP status code
        response_body: Raw response body (if available)
    """

    def __init__(self, message: str, status_code: int, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RouterOSAuthenticationError(RouterOSClientError):
    """Raised for authentication failures (HTTP 401)."""

    def __init__(self, message: str = "Authentication failed", response_body: str | None = None):
        super().__init__(message, 401, response_body)


class RouterOSAuthorizationError(RouterOSClientError):
    """Raised for authorization failures (HTTP 403)."""

    def __init__(self, message: str = "Authorization denied", response_body: str | None = None):
        super().__init__(message, 403, response_body)


class RouterOSNotFoundError(RouterOSClientError):
    """Raised when resource not found (HTTP 404)."""

    def __init__(self, message: str = "Resource not found", response_body: str | None = None):
        super().__init__(message, 404, response_body)


class RouterOSValidationError(RouterOSClientError):
    """Raised for validation errors (HTTP 400, 422)."""

    def __init__(self, message: str, status_code: int = 400, response_body: str | None = None):
        super().__init__(message, status_code, response_body)


# Server errors (5xx)
class RouterOSServerError(RouterOSError):
    """Raised for server errors (HTTP 5xx).

    Attributes:
        status_code: HTTP status code
        response_body: Raw response body (if available)
    """

    def __init__(self, message: str, status_code: int, response_body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RouterOSResponseError(RouterOSError):
    """Raised when a response body is not valid JSON."""

    pass


# Pool and prober errors
class DeviceConnectionError(RouterOSError):
    """Raised when a session to a device cannot be established.

    Attributes:
        device_id: Device the session was meant for
        reason: Short human-readable cause
    """

    def __init__(self, device_id: str, reason: str) -> None:
        super().__init__(f"Connection to device '{device_id}' failed: {reason}")
        self.device_id = device_id
        self.reason = reason


class DeviceProbeError(RouterOSError):
    """Raised when an established session fails the status query.

    The session must be considered tainted and released from the pool.

    Attributes:
        device_id: Probed device
        reason: Short human-readable cause
    """

    def __init__(self, device_id: str, reason: str) -> None:
        super().__init__(f"Status query on device '{device_id}' failed: {reason}")
        self.device_id = device_id
        self.reason = reason

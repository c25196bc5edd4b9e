"""RouterOS session over the device REST API.

A RouterOSConnection is the unit the connection pool hands out: one
authenticated httpx client bound to one device, plus a liveness flag.

Design principles:
- Use httpx for modern async HTTP
- Map HTTP errors to domain exceptions
- Never log credentials or sensitive data
- No retries here; retry policy belongs to callers
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from mikrotik_dashboard.infra.observability.metrics import record_routeros_request
from mikrotik_dashboard.infra.routeros.exceptions import (
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

logger = logging.getLogger(__name__)

# Cheap authenticated read used as the session handshake
IDENTITY_PATH = "/rest/system/identity"


@dataclass(frozen=True)
class ConnectionParams:
    """Everything needed to open a session to one device."""

    host: str
    port: int
    username: str
    password: str = field(repr=False)
    use_tls: bool = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self.use_tls else "http"
        host = self.host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{scheme}://{host}:{self.port}"


class RouterOSConnection:
    """Async session to a single RouterOS device.

    Example:
        connection = RouterOSConnection(
            device_id="6f1c...",
            params=ConnectionParams("192.168.88.1", 8728, "admin", "secret"),
        )
        await connection.establish()
        resource = await connection.get("/rest/system/resource")
        await connection.close()
    """

    def __init__(
        self,
        device_id: str,
        params: ConnectionParams,
        timeout_seconds: float = 5.0,
        verify_ssl: bool = False,
        idle_expiry_seconds: float = 0.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the session (no network I/O happens here).

        Args:
            device_id: Owning device identifier
            params: Host, port, credentials and transport flag
            timeout_seconds: Per-request timeout enforced by httpx
            verify_ssl: Verify TLS certificates when use_tls is set
            idle_expiry_seconds: Session counts as stale after this much idle time (0 = never)
            transport: Optional httpx transport (tests inject httpx.MockTransport)
        """
        self.device_id = device_id
        self.params = params
        self.verify_ssl = verify_ssl
        self.idle_expiry_seconds = idle_expiry_seconds

        self.timeout = httpx.Timeout(timeout_seconds)
        self.limits = httpx.Limits(
            max_connections=5,
            max_keepalive_connections=3,
            keepalive_expiry=30.0,
        )

        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._alive = False
        self._last_used = 0.0

    @property
    def base_url(self) -> str:
        return self.params.base_url

    @property
    def alive(self) -> bool:
        """Whether the pool may hand this session out without a new handshake."""
        if self._client is None or not self._alive:
            return False
        if self.idle_expiry_seconds > 0:
            idle = time.monotonic() - self._last_used
            if idle > self.idle_expiry_seconds:
                return False
        return True

    @property
    def closed(self) -> bool:
        return self._client is None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.params.base_url,
            auth=(self.params.username, self.params.password),
            timeout=self.timeout,
            limits=self.limits,
            verify=self.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        )

    async def establish(self, params: ConnectionParams | None = None) -> None:
        """Open (or re-open) the session and verify credentials.

        Args:
            params: Replacement parameters; defaults to the current ones

        Raises:
            RouterOSError: Mapped transport/authentication failure
        """
        if params is not None:
            self.params = params

        await self.close()
        self._client = self._build_client()

        try:
            await self._request("GET", IDENTITY_PATH)
        except RouterOSError:
            await self.close()
            raise

        self._alive = True
        logger.info(
            "RouterOS session established",
            extra={
                "device_id": self.device_id,
                "host": self.params.host,
                "port": self.params.port,
            },
        )

    async def close(self) -> None:
        """Close HTTP client and cleanup connections."""
        self._alive = False
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute one HTTP request and map failures.

        Returns:
            Decoded JSON body (dict or list), {} for an empty body

        Raises:
            RouterOSTimeoutError: On timeout
            RouterOSNetworkError: On network errors
            RouterOSClientError: On 4xx errors
            RouterOSServerError: On 5xx errors
            RouterOSResponseError: On a body that is not JSON
        """
        if self._client is None:
            raise RouterOSConnectionError(
                f"Session to device '{self.device_id}' is not established"
            )

        start = time.perf_counter()
        try:
            response = await self._client.request(method=method, url=path, params=params)
        except httpx.TimeoutException as e:
            self._alive = False
            record_routeros_request(method, time.perf_counter() - start, success=False)
            raise RouterOSTimeoutError(
                f"Request timeout after {self.timeout.read}s: {method} {path}"
            ) from e
        except httpx.TransportError as e:
            self._alive = False
            record_routeros_request(method, time.perf_counter() - start, success=False)
            raise RouterOSNetworkError(
                f"Network error: {method} {path}: {type(e).__name__}"
            ) from e

        duration = time.perf_counter() - start
        if response.status_code >= 400:
            record_routeros_request(method, duration, success=False)
            self._handle_error_response(response)

        record_routeros_request(method, duration, success=True)
        self._last_used = time.monotonic()

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RouterOSResponseError(f"Invalid JSON in response: {method} {path}") from e

    def _handle_error_response(self, response: httpx.Response) -> None:
        """Map HTTP error response to appropriate exception.

        Args:
            response: HTTP response with error status

        Raises:
            Appropriate RouterOSError subclass based on status code
        """
        status_code = response.status_code
        response_body = response.text

        # RouterOS reports {"error": 401, "message": "Unauthorized", "detail": ...}
        try:
            error_data = response.json()
            error_message = error_data.get("detail") or error_data.get("message") or response_body
        except Exception:
            error_message = response_body

        if status_code == 401:
            raise RouterOSAuthenticationError(
                f"Authentication failed: {error_message}", response_body
            )
        elif status_code == 403:
            raise RouterOSAuthorizationError(
                f"Authorization denied: {error_message}", response_body
            )
        elif status_code == 404:
            raise RouterOSNotFoundError(f"Resource not found: {error_message}", response_body)
        elif status_code == 400 or status_code == 422:
            raise RouterOSValidationError(
                f"Validation error: {error_message}", status_code, response_body
            )
        elif 400 <= status_code < 500:
            raise RouterOSClientError(
                f"Client error ({status_code}): {error_message}",
                status_code,
                response_body,
            )
        else:
            raise RouterOSServerError(
                f"Server error ({status_code}): {error_message}",
                status_code,
                response_body,
            )

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Execute GET request.

        Args:
            path: API path (e.g., "/rest/system/resource")
            params: Optional query parameters

        Returns:
            JSON response

        Example:
            resource = await connection.get("/rest/system/resource")
            print(f"Board: {resource['board-name']}")
        """
        return await self._request("GET", path, params=params)

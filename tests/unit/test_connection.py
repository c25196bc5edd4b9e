"""Tests for the RouterOS REST session."""

import json

import httpx
import pytest

from mikrotik_dashboard.infra.routeros.connection import (
    IDENTITY_PATH,
    ConnectionParams,
    RouterOSConnection,
)
from mikrotik_dashboard.infra.routeros.exceptions import (
    RouterOSAuthenticationError,
    RouterOSAuthorizationError,
    RouterOSClientError,
    RouterOSConnectionError,
    RouterOSNetworkError,
    RouterOSNotFoundError,
    RouterOSResponseError,
    RouterOSServerError,
    RouterOSTimeoutError,
    RouterOSValidationError,
)


def make_connection(handler, params: ConnectionParams | None = None, **kwargs) -> RouterOSConnection:
    return RouterOSConnection(
        "dev-1",
        params or ConnectionParams("192.168.88.1", 8728, "admin", "secret"),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def routeros_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == IDENTITY_PATH:
        return httpx.Response(200, json={"name": "core-router"})
    if request.url.path == "/rest/system/resource":
        return httpx.Response(200, json={"version": "7.10.1", "board-name": "RB4011"})
    return httpx.Response(404, json={"error": 404, "message": "Not Found"})


class TestConnectionParams:
    def test_plain_transport_uses_http(self) -> None:
        params = ConnectionParams("10.0.0.1", 8728, "admin", "secret")
        assert params.base_url == "http://10.0.0.1:8728"

    def test_tls_transport_uses_https(self) -> None:
        params = ConnectionParams("10.0.0.1", 443, "admin", "secret", use_tls=True)
        assert params.base_url == "https://10.0.0.1:443"

    def test_ipv6_host_is_bracketed(self) -> None:
        params = ConnectionParams("fe80::1", 8728, "admin", "secret")
        assert params.base_url == "http://[fe80::1]:8728"

    def test_password_not_in_repr(self) -> None:
        params = ConnectionParams("10.0.0.1", 8728, "admin", "hunter2")
        assert "hunter2" not in repr(params)


class TestEstablish:
    @pytest.mark.asyncio
    async def test_establish_marks_alive(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return routeros_handler(request)

        connection = make_connection(handler)
        assert not connection.alive

        await connection.establish()

        assert connection.alive
        assert seen[0].url.path == IDENTITY_PATH
        assert seen[0].headers["authorization"].startswith("Basic ")
        await connection.close()

    @pytest.mark.asyncio
    async def test_establish_with_bad_credentials(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": 401, "message": "Unauthorized"})

        connection = make_connection(handler)

        with pytest.raises(RouterOSAuthenticationError):
            await connection.establish()

        assert not connection.alive
        assert connection.closed

    @pytest.mark.asyncio
    async def test_establish_unreachable_host(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        connection = make_connection(handler)

        with pytest.raises(RouterOSNetworkError):
            await connection.establish()

        assert connection.closed

    @pytest.mark.asyncio
    async def test_establish_with_new_params(self) -> None:
        hosts: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            return routeros_handler(request)

        connection = make_connection(handler)
        await connection.establish()
        await connection.establish(ConnectionParams("10.9.9.9", 8728, "admin", "secret"))

        assert hosts == ["192.168.88.1", "10.9.9.9"]
        assert connection.params.host == "10.9.9.9"
        await connection.close()


class TestRequests:
    @pytest.mark.asyncio
    async def test_get_before_establish(self) -> None:
        connection = make_connection(routeros_handler)

        with pytest.raises(RouterOSConnectionError, match="not established"):
            await connection.get("/rest/system/resource")

    @pytest.mark.asyncio
    async def test_get_returns_json(self) -> None:
        connection = make_connection(routeros_handler)
        await connection.establish()

        data = await connection.get("/rest/system/resource")

        assert data == {"version": "7.10.1", "board-name": "RB4011"}
        await connection.close()

    @pytest.mark.asyncio
    async def test_timeout_clears_liveness(self) -> None:
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            if calls["n"] > 1:
                raise httpx.ReadTimeout("timed out", request=request)
            return routeros_handler(request)

        connection = make_connection(handler)
        await connection.establish()

        with pytest.raises(RouterOSTimeoutError):
            await connection.get("/rest/system/resource")

        assert not connection.alive
        await connection.close()

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == IDENTITY_PATH:
                return httpx.Response(200, json={})
            return httpx.Response(200, content=b"<html>")

        connection = make_connection(handler)
        await connection.establish()

        with pytest.raises(RouterOSResponseError):
            await connection.get("/rest/system/resource")
        await connection.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "error_type"),
        [
            (400, RouterOSValidationError),
            (403, RouterOSAuthorizationError),
            (404, RouterOSNotFoundError),
            (409, RouterOSClientError),
            (500, RouterOSServerError),
        ],
    )
    async def test_error_status_mapping(self, status_code, error_type) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == IDENTITY_PATH:
                return httpx.Response(200, json={})
            body = json.dumps({"error": status_code, "message": "nope", "detail": "bad thing"})
            return httpx.Response(status_code, content=body.encode())

        connection = make_connection(handler)
        await connection.establish()

        with pytest.raises(error_type, match="bad thing"):
            await connection.get("/rest/system/resource")
        await connection.close()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        connection = make_connection(routeros_handler)
        await connection.establish()

        await connection.close()
        await connection.close()

        assert connection.closed
        assert not connection.alive

    @pytest.mark.asyncio
    async def test_idle_expiry(self) -> None:
        connection = make_connection(routeros_handler, idle_expiry_seconds=60.0)
        await connection.establish()
        assert connection.alive

        connection._last_used -= 61.0
        assert not connection.alive
        await connection.close()

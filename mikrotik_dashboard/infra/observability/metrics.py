"""Prometheus metrics for observability.

Provides metrics collection for connect requests, RouterOS round-trips,
the connection pool and the live event stream.
"""

import logging

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)

# Global registry for metrics
_registry = CollectorRegistry()


# Connect workflow metrics
connect_attempts_total = Counter(
    "mikrotik_dashboard_connect_attempts_total",
    "Total number of device connect requests",
    ["outcome"],
    registry=_registry,
)

connect_duration_seconds = Histogram(
    "mikrotik_dashboard_connect_duration_seconds",
    "Duration of device connect requests in seconds",
    ["outcome"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=_registry,
)

# RouterOS client metrics
routeros_requests_total = Counter(
    "mikrotik_dashboard_routeros_requests_total",
    "Total number of RouterOS API requests",
    ["method", "status"],
    registry=_registry,
)

routeros_request_duration_seconds = Histogram(
    "mikrotik_dashboard_routeros_request_duration_seconds",
    "Duration of RouterOS API requests in seconds",
    ["method"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=_registry,
)

# Connection pool metrics
pool_handshakes_total = Counter(
    "mikrotik_dashboard_pool_handshakes_total",
    "Total number of RouterOS session handshakes",
    ["result"],
    registry=_registry,
)

pool_connections_active = Gauge(
    "mikrotik_dashboard_pool_connections_active",
    "Number of pooled RouterOS sessions",
    registry=_registry,
)

# Event stream metrics
events_published_total = Counter(
    "mikrotik_dashboard_events_published_total",
    "Total number of events published to the event bus",
    ["event_type", "level"],
    registry=_registry,
)

event_subscribers_active = Gauge(
    "mikrotik_dashboard_event_subscribers_active",
    "Number of active event bus observers",
    registry=_registry,
)

event_deliveries_dropped_total = Counter(
    "mikrotik_dashboard_event_deliveries_dropped_total",
    "Total number of event deliveries dropped",
    ["reason"],
    registry=_registry,
)

sse_connections_active = Gauge(
    "mikrotik_dashboard_sse_connections_active",
    "Number of open event stream connections",
    registry=_registry,
)

sse_connection_duration_seconds = Histogram(
    "mikrotik_dashboard_sse_connection_duration_seconds",
    "Duration of event stream connections in seconds",
    buckets=(1.0, 10.0, 60.0, 300.0, 900.0, 1800.0, 3600.0),
    registry=_registry,
)


def get_registry() -> CollectorRegistry:
    """Get the metrics registry.

    Returns:
        Prometheus collector registry
    """
    return _registry


def get_metrics_text() -> str:
    """Get metrics in Prometheus text format.

    Returns:
        Metrics in Prometheus exposition format
    """
    return generate_latest(_registry).decode("utf-8")


def record_connect_attempt(outcome: str, duration: float) -> None:
    """Record the outcome of a connect request.

    Args:
        outcome: "success" or the failure kind (not_found, connection, probe, registry)
        duration: Wall-clock duration in seconds
    """
    connect_attempts_total.labels(outcome=outcome).inc()
    connect_duration_seconds.labels(outcome=outcome).observe(duration)


def record_routeros_request(method: str, duration: float, success: bool) -> None:
    """Record metrics for a RouterOS API request.

    Args:
        method: HTTP method
        duration: Request duration in seconds
        success: Whether the request succeeded
    """
    status = "success" if success else "error"
    routeros_requests_total.labels(method=method, status=status).inc()
    routeros_request_duration_seconds.labels(method=method).observe(duration)


def record_handshake(success: bool) -> None:
    """Record a session handshake attempt."""
    pool_handshakes_total.labels(result="success" if success else "error").inc()


def update_pool_size(size: int) -> None:
    """Update the pooled session gauge."""
    pool_connections_active.set(size)


def record_event_published(event_type: str, level: str) -> None:
    """Record an event published on the bus."""
    events_published_total.labels(event_type=event_type, level=level).inc()


def update_event_subscribers(count: int) -> None:
    """Update the active observer gauge."""
    event_subscribers_active.set(count)


def record_event_dropped(reason: str) -> None:
    """Record a dropped delivery.

    Args:
        reason: Reason for drop (e.g., "queue_full", "closed")
    """
    event_deliveries_dropped_total.labels(reason=reason).inc()


def record_sse_connection_start() -> None:
    """Record when an SSE connection is established."""
    sse_connections_active.inc()


def record_sse_connection_end(duration: float) -> None:
    """Record when an SSE connection is closed.

    Args:
        duration: Connection duration in seconds
    """
    sse_connections_active.dec()
    sse_connection_duration_seconds.observe(duration)


__all__ = [
    "get_registry",
    "get_metrics_text",
    "record_connect_attempt",
    "record_routeros_request",
    "record_handshake",
    "update_pool_size",
    "record_event_published",
    "update_event_subscribers",
    "record_event_dropped",
    "record_sse_connection_start",
    "record_sse_connection_end",
]

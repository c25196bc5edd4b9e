"""Observability infrastructure for the MikroTik Dashboard.

Provides structured logging and Prometheus metrics for monitoring and
debugging production deployments.
"""

from mikrotik_dashboard.infra.observability.logging import (
    CorrelationIDFilter,
    JSONFormatter,
    correlation_id_var,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
    setup_logging,
)
from mikrotik_dashboard.infra.observability.metrics import (
    get_metrics_text,
    get_registry,
    record_connect_attempt,
    record_event_dropped,
    record_event_published,
    record_handshake,
    record_routeros_request,
)

__all__ = [
    # Logging
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
    "CorrelationIDFilter",
    "JSONFormatter",
    "setup_logging",
    # Metrics
    "get_registry",
    "get_metrics_text",
    "record_connect_attempt",
    "record_routeros_request",
    "record_handshake",
    "record_event_published",
    "record_event_dropped",
]

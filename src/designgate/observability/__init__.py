"""
Observability — Logging and metrics for designgate.

Provides:
- Structured logging with session ID propagation
- Guardrail metrics (counters, gauges, histograms)
"""

from designgate.observability.logging import (
    set_session_id,
    get_session_id,
    configure_logging,
    get_logger,
    LogContext,
    JSONFormatter,
    ReadableFormatter,
)
from designgate.observability.metrics import (
    Counter,
    Gauge,
    Histogram,
    MetricsRegistry,
    get_metrics,
    reset_metrics,
)

__all__ = [
    # Logging
    "set_session_id",
    "get_session_id",
    "configure_logging",
    "get_logger",
    "LogContext",
    "JSONFormatter",
    "ReadableFormatter",
    # Metrics
    "Counter",
    "Gauge",
    "Histogram",
    "MetricsRegistry",
    "get_metrics",
    "reset_metrics",
]

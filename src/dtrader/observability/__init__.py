"""Observability: logging, metrics, record sinks."""

from dtrader.observability.logging import (
    JSONFormatter,
    SensitiveDataFilter,
    get_logger,
    mask_sensitive,
    setup_logging,
)
from dtrader.observability.metrics import MetricsDispatchObserver, record_shutdown
from dtrader.observability.sink import DebugDispatchObserver, LoggingSink

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "mask_sensitive",
    "JSONFormatter",
    "SensitiveDataFilter",
    # Sinks and observers
    "LoggingSink",
    "DebugDispatchObserver",
    "MetricsDispatchObserver",
    # Metrics helpers
    "record_shutdown",
]

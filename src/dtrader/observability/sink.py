"""
Logging-backed observability sink.

Turns ``record(level, message, metadata)`` calls from the bus and the
orchestrator into stdlib log records carrying the metadata as extra fields.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Mapping
from typing import Any

from dtrader.observability.logging import STRUCTURED_FIELDS, get_logger, mask_sensitive

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}


class LoggingSink:
    """ObservabilitySink writing to a stdlib logger."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @classmethod
    def for_module(cls, name: str) -> LoggingSink:
        return cls(get_logger(name))

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def record(self, level: str, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        with contextlib.suppress(Exception):
            levelno = _LEVELS.get(str(level).lower(), logging.INFO)
            if not self._logger.isEnabledFor(levelno):
                return

            meta = dict(metadata or {})
            error = meta.pop("exc_info", None)
            exc_info = error if isinstance(error, BaseException) else None

            extra: dict[str, Any] = {"metadata": mask_sensitive(meta)}
            for key in STRUCTURED_FIELDS:
                if key in meta and key != "metadata":
                    extra[key] = meta[key]

            self._logger.log(levelno, message, exc_info=exc_info, extra=extra)


class DebugDispatchObserver:
    """
    DispatchObserver that records every fan-out at debug level.

    Registered only when event bus debugging is enabled.
    """

    def __init__(self, sink: LoggingSink | None = None):
        self._sink = sink or LoggingSink.for_module("dtrader.bus")

    def before_dispatch(self, kind: Any, args: tuple[Any, ...], listener_count: int) -> None:
        self._sink.record(
            "debug",
            f"Event {kind}",
            {"event_kind": str(kind), "arg_count": len(args), "listener_count": listener_count},
        )

    def after_dispatch(self, kind: Any, delivered: int, failures: int) -> None:
        if failures:
            self._sink.record(
                "debug",
                f"Event {kind} delivered with failures",
                {"event_kind": str(kind), "delivered": delivered, "failures": failures},
            )

"""
Observability Port.

Defines the structured record sink used by the bus and the orchestrator.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class ObservabilitySink(Protocol):
    """Interface for structured record sinks."""

    def record(self, level: str, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        """
        Record one structured entry.

        Implementations must never raise back into the caller.

        Args:
            level: "debug", "info", "warning", "error" or "critical".
            message: Human readable message.
            metadata: Extra structured fields.
        """
        ...

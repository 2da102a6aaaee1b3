"""
Error Taxonomy.

All console-core exceptions with clear categorization.
"""

from __future__ import annotations

from typing import Any


class ConsoleError(Exception):
    """
    Base class for all console errors.

    Includes structured error info for logging and debugging.
    """

    error_code: str = "CONSOLE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "kind": self.kind,
            "details": self.details,
        }


# =============================================================================
# Event Errors
# =============================================================================


class EventPayloadError(ConsoleError):
    """Published arguments do not match the event kind's shape."""

    error_code = "EVENT_PAYLOAD"


class UnknownEventKindError(ConsoleError):
    """Event name is not part of the closed set."""

    error_code = "UNKNOWN_EVENT_KIND"


class ListenerSignatureError(ConsoleError):
    """Listener cannot accept the arguments of the kind it subscribes to."""

    error_code = "LISTENER_SIGNATURE"


# =============================================================================
# Lifecycle Errors
# =============================================================================


class LifecycleError(ConsoleError):
    """Operation not allowed in the current lifecycle state."""

    error_code = "LIFECYCLE"

    def __init__(self, message: str, *, state: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.state = state
        self.details["state"] = state


class FatalError(ConsoleError):
    """
    Fault that must take the whole process down.

    Publishing an ``app:error`` event carrying a FatalError escalates to the
    shutdown sequence instead of just being rendered.
    """

    error_code = "FATAL"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ConsoleError):
    """Configuration is invalid or incomplete."""

    error_code = "CONFIGURATION"

    def __init__(self, message: str, *, problems: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.problems = list(problems or [])
        self.details["problems"] = self.problems

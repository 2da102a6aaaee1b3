"""
Domain Layer: event kinds, lifecycle model and error taxonomy.

This layer has NO external dependencies.
"""

from dtrader.domain.errors import (
    ConfigurationError,
    ConsoleError,
    EventPayloadError,
    FatalError,
    LifecycleError,
    ListenerSignatureError,
    UnknownEventKindError,
)
from dtrader.domain.events import EVENT_SHAPES, EventKind, EventShape, shape_of
from dtrader.domain.models import (
    Environment,
    LifecycleState,
    RenderKind,
    SessionDescriptor,
)

__all__ = [
    # Errors
    "ConsoleError",
    "ConfigurationError",
    "EventPayloadError",
    "FatalError",
    "LifecycleError",
    "ListenerSignatureError",
    "UnknownEventKindError",
    # Events
    "EVENT_SHAPES",
    "EventKind",
    "EventShape",
    "shape_of",
    # Models
    "Environment",
    "LifecycleState",
    "RenderKind",
    "SessionDescriptor",
]

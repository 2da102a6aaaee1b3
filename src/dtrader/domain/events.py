"""
Event Kinds.

The closed set of events that travel over the bus. Every kind has a fixed
argument shape, so subscribers are written against a known payload and the bus
can validate a publish without looking inside the values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from dtrader.domain.errors import EventPayloadError, UnknownEventKindError


class EventKind(str, Enum):
    """Every event the console knows about."""

    APP_START = "app:start"
    APP_STOP = "app:stop"
    APP_ERROR = "app:error"
    TERMINAL_EXIT = "terminal:exit"
    TERMINAL_KEY = "terminal:key"
    TERMINAL_RESIZE = "terminal:resize"
    CONFIG_LOADED = "config:loaded"
    CONFIG_ERROR = "config:error"

    @classmethod
    def parse(cls, value: str | EventKind) -> EventKind:
        """Resolve a wire name (e.g. ``"terminal:resize"``) to its kind."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownEventKindError(f"Unknown event kind: {value!r}", kind=str(value)) from None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class EventShape:
    """Named, typed argument tuple carried by one event kind."""

    kind: EventKind
    params: tuple[tuple[str, type | tuple[type, ...]], ...] = ()

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.params)

    def validate(self, args: tuple[Any, ...]) -> None:
        """Raise EventPayloadError unless ``args`` matches this shape exactly."""
        if len(args) != self.arity:
            raise EventPayloadError(
                f"{self.kind} expects {self.arity} argument(s) {self.names}, got {len(args)}",
                kind=self.kind.value,
                details={"expected": list(self.names), "received": len(args)},
            )

        for (name, expected), value in zip(self.params, args, strict=True):
            # bool is an int subclass; a flag is never a dimension
            if isinstance(value, bool) and expected is int:
                ok = False
            else:
                ok = isinstance(value, expected)
            if not ok:
                raise EventPayloadError(
                    f"{self.kind} argument '{name}' must be {_type_name(expected)}, "
                    f"got {type(value).__name__}",
                    kind=self.kind.value,
                    details={"argument": name, "received_type": type(value).__name__},
                )


def _type_name(expected: type | tuple[type, ...]) -> str:
    if isinstance(expected, tuple):
        return " | ".join(t.__name__ for t in expected)
    return expected.__name__


EVENT_SHAPES: Mapping[EventKind, EventShape] = {
    EventKind.APP_START: EventShape(EventKind.APP_START),
    EventKind.APP_STOP: EventShape(EventKind.APP_STOP),
    EventKind.APP_ERROR: EventShape(EventKind.APP_ERROR, (("error", BaseException),)),
    EventKind.TERMINAL_EXIT: EventShape(EventKind.TERMINAL_EXIT),
    EventKind.TERMINAL_KEY: EventShape(
        EventKind.TERMINAL_KEY, (("key_name", str), ("data", (bytes, bytearray)))
    ),
    EventKind.TERMINAL_RESIZE: EventShape(
        EventKind.TERMINAL_RESIZE, (("width", int), ("height", int))
    ),
    EventKind.CONFIG_LOADED: EventShape(EventKind.CONFIG_LOADED, (("config", Mapping),)),
    EventKind.CONFIG_ERROR: EventShape(EventKind.CONFIG_ERROR, (("error", BaseException),)),
}


def shape_of(kind: str | EventKind) -> EventShape:
    """Look up the argument shape for a kind (or its wire name)."""
    return EVENT_SHAPES[EventKind.parse(kind)]

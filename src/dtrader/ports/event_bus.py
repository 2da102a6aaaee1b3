"""
Event Bus Port: Abstract interface for the typed pub/sub channel.

Used for loose coupling between the orchestrator, the presentation surface and
anything else reacting to console events.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from dtrader.domain.events import EventKind

Listener = Callable[..., Any]


@dataclass(frozen=True, eq=False, slots=True)
class Subscription:
    """
    Handle for one registration.

    Compared by identity: subscribing the same callable twice yields two
    distinct handles.
    """

    kind: EventKind
    listener: Listener
    once: bool = False

    @property
    def listener_name(self) -> str:
        return getattr(self.listener, "__qualname__", None) or repr(self.listener)


class DispatchObserver(Protocol):
    """Hook invoked around every fan-out."""

    def before_dispatch(self, kind: EventKind, args: tuple[Any, ...], listener_count: int) -> None:
        ...

    def after_dispatch(self, kind: EventKind, delivered: int, failures: int) -> None:
        ...


class EventBusPort(ABC):
    """
    Abstract interface for the event bus.

    Every event kind carries a fixed argument tuple (see EVENT_SHAPES).
    """

    @abstractmethod
    def publish(self, kind: EventKind | str, *args: Any) -> bool:
        """
        Deliver an event to every listener of ``kind`` in registration order.

        Returns:
            True if at least one listener was registered.
        """
        ...

    @abstractmethod
    def subscribe(self, kind: EventKind | str, listener: Listener) -> Subscription:
        """Append a listener to the fan-out list of ``kind``."""
        ...

    @abstractmethod
    def subscribe_once(self, kind: EventKind | str, listener: Listener) -> Subscription:
        """Like subscribe, but removed right before its first invocation."""
        ...

    @abstractmethod
    def unsubscribe(self, kind: EventKind | str, listener: Listener | Subscription) -> bool:
        """Remove the most recent matching registration (no-op if absent)."""
        ...

    @abstractmethod
    def listener_count(self, kind: EventKind | str) -> int:
        """Number of live registrations for ``kind``."""
        ...

    @abstractmethod
    def registered_kinds(self) -> list[EventKind]:
        """Kinds that currently have at least one registration."""
        ...

    @abstractmethod
    def reset(self) -> None:
        """Drop every registration for every kind."""
        ...

"""Messaging adapters."""

from dtrader.adapters.messaging.event_bus import DEFAULT_MAX_LISTENERS, InMemoryEventBus

__all__ = ["DEFAULT_MAX_LISTENERS", "InMemoryEventBus"]

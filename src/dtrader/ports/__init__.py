"""
Ports: Abstract interfaces for external dependencies.

This follows the Ports & Adapters (Hexagonal) architecture pattern.
The lifecycle core depends only on these interfaces, not on concrete implementations.
"""

from dtrader.ports.event_bus import DispatchObserver, EventBusPort, Listener, Subscription
from dtrader.ports.observability import ObservabilitySink
from dtrader.ports.presentation import PresentationPort

__all__ = [
    "DispatchObserver",
    "EventBusPort",
    "Listener",
    "ObservabilitySink",
    "PresentationPort",
    "Subscription",
]

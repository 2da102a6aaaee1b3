"""
Adapters: Concrete implementations of ports.

This layer contains the in-process integrations:
- Messaging adapters (EventBus)

The terminal presentation adapter lives in ``dtrader.ui``.
"""

"""dtrader console: typed event bus and lifecycle orchestration for the trading console."""

__version__ = "2.0.0"

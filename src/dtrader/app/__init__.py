"""Application layer: lifecycle orchestration and process entry points."""

from dtrader.app.orchestrator import EXIT_FATAL, EXIT_KEYS, EXIT_OK, LifecycleOrchestrator

__all__ = ["EXIT_FATAL", "EXIT_KEYS", "EXIT_OK", "LifecycleOrchestrator"]

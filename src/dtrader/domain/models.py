"""
Canonical Domain Models.

Lifecycle states, render kinds and the session descriptor shared by the
orchestrator and the presentation surface.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# =============================================================================
# ENUMS
# =============================================================================


class LifecycleState(str, Enum):
    """Process lifecycle state."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"

    def is_terminal(self) -> bool:
        """Check if shutdown has already been requested."""
        return self in (LifecycleState.STOPPING, LifecycleState.STOPPED)


class RenderKind(str, Enum):
    """Message categories understood by the presentation surface."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class Environment(str, Enum):
    """Deployment environment tag."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> Environment:
        """Parse environment from loose spellings (``dev``, ``prod``...)."""
        normalized = value.lower().strip()
        if normalized in ("development", "dev", "local", "test"):
            return cls.DEVELOPMENT
        if normalized in ("production", "prod"):
            return cls.PRODUCTION
        raise ValueError(f"Unknown environment: {value}")


# =============================================================================
# SESSION
# =============================================================================


def _new_session_id() -> str:
    return secrets.token_hex(4).upper()


@dataclass(frozen=True, slots=True)
class SessionDescriptor:
    """Read-only facts about the running console session."""

    version: str = "2.0.0"
    environment: Environment = Environment.DEVELOPMENT
    id: str = field(default_factory=_new_session_id)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.id,
            "version": self.version,
            "environment": self.environment.value,
            "started_at": self.started_at.isoformat(),
        }

"""
Presentation Port.

Defines the text/keyboard surface the orchestrator drives. The surface never
owns the bus; it only hands input back through the registered callbacks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from dtrader.domain.models import RenderKind, SessionDescriptor

KeyCallback = Callable[[str, bytes], None]
ResizeCallback = Callable[[int, int], None]


class PresentationPort(Protocol):
    """Interface for presentation adapters."""

    def render(self, kind: RenderKind, text: str, detail: BaseException | None = None) -> None:
        """
        Show a message to the user.

        Args:
            kind: Message category (info, warning, error, success).
            text: Message text.
            detail: Optional error whose details may be shown.
        """
        ...

    def show_welcome(self, session: SessionDescriptor) -> None:
        """Draw the start screen."""
        ...

    def show_farewell(self) -> None:
        """Draw the final goodbye message."""
        ...

    def capture_input(self) -> None:
        """Start delivering key presses to the key callback."""
        ...

    def release_input(self) -> None:
        """Stop key delivery and restore the terminal. Safe to call twice."""
        ...

    def on_key(self, callback: KeyCallback) -> None:
        """Register the callback receiving ``(key_name, raw_bytes)``."""
        ...

    def on_resize(self, callback: ResizeCallback) -> None:
        """Register the callback receiving ``(width, height)``."""
        ...

    def size(self) -> tuple[int, int]:
        """Current ``(width, height)`` of the surface."""
        ...

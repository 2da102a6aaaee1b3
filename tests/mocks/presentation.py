"""
Presentation and sink fakes for testing.

Record every call so tests can assert on what the orchestrator showed and
logged without a real terminal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from dtrader.domain.models import RenderKind, SessionDescriptor
from dtrader.ports.presentation import KeyCallback, ResizeCallback


@dataclass
class RecordedEntry:
    """One sink.record() call."""
    level: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


class RecordingSink:
    """ObservabilitySink that keeps every entry in memory."""

    def __init__(self) -> None:
        self.entries: list[RecordedEntry] = []

    def record(self, level: str, message: str, metadata: Mapping[str, Any] | None = None) -> None:
        self.entries.append(RecordedEntry(level, message, dict(metadata or {})))

    def at(self, level: str) -> list[RecordedEntry]:
        return [e for e in self.entries if e.level == level]

    def messages(self, level: str | None = None) -> list[str]:
        return [e.message for e in self.entries if level is None or e.level == level]


class FakePresentation:
    """PresentationPort fake with a scripted keyboard."""

    def __init__(
        self,
        *,
        fail_capture: BaseException | None = None,
        fail_farewell: BaseException | None = None,
        size: tuple[int, int] = (80, 24),
    ):
        self.fail_capture = fail_capture
        self.fail_farewell = fail_farewell
        self._size = size

        self.calls: list[str] = []
        self.rendered: list[tuple[RenderKind, str, BaseException | None]] = []
        self.welcomed: list[SessionDescriptor] = []
        self.captured = False
        self.key_callback: KeyCallback | None = None
        self.resize_callback: ResizeCallback | None = None

    # PresentationPort

    def render(self, kind: RenderKind, text: str, detail: BaseException | None = None) -> None:
        self.calls.append("render")
        self.rendered.append((RenderKind(kind), text, detail))

    def show_welcome(self, session: SessionDescriptor) -> None:
        self.calls.append("show_welcome")
        self.welcomed.append(session)

    def show_farewell(self) -> None:
        self.calls.append("show_farewell")
        if self.fail_farewell is not None:
            raise self.fail_farewell

    def capture_input(self) -> None:
        self.calls.append("capture_input")
        if self.fail_capture is not None:
            raise self.fail_capture
        self.captured = True

    def release_input(self) -> None:
        self.calls.append("release_input")
        self.captured = False

    def on_key(self, callback: KeyCallback) -> None:
        self.key_callback = callback

    def on_resize(self, callback: ResizeCallback) -> None:
        self.resize_callback = callback

    def size(self) -> tuple[int, int]:
        return self._size

    # Test helpers

    def press(self, key_name: str, data: bytes = b"") -> None:
        assert self.key_callback is not None, "on_key was never registered"
        self.key_callback(key_name, data)

    def resize(self, width: int, height: int) -> None:
        assert self.resize_callback is not None, "on_resize was never registered"
        self._size = (width, height)
        self.resize_callback(width, height)

    def texts(self, kind: RenderKind | None = None) -> list[str]:
        return [text for k, text, _ in self.rendered if kind is None or k == kind]

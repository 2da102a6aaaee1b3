"""
Rich terminal presentation adapter.

Draws the console screens with rich and captures the keyboard by switching
stdin to a non-canonical, no-signal mode and reading it from the event loop.
Key presses and window resizes are handed to the callbacks registered with
``on_key`` / ``on_resize``; the terminal never talks to the event bus itself.
"""

from __future__ import annotations

import asyncio
import os
import platform
import signal
import sys
from typing import Any, TextIO

from rich import box
from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from dtrader.config.settings import TerminalSettings
from dtrader.domain.models import RenderKind, SessionDescriptor
from dtrader.observability.logging import get_logger
from dtrader.ports.presentation import KeyCallback, ResizeCallback
from dtrader.ui.keys import iter_keys

if sys.platform != "win32":
    import termios

logger = get_logger(__name__)

_STYLES = {
    RenderKind.INFO: "blue",
    RenderKind.WARNING: "yellow",
    RenderKind.ERROR: "red",
    RenderKind.SUCCESS: "green",
}

_ICONS_UNICODE = {
    RenderKind.INFO: "ℹ",
    RenderKind.WARNING: "⚠",
    RenderKind.ERROR: "✖",
    RenderKind.SUCCESS: "✔",
}

_ICONS_ASCII = {
    RenderKind.INFO: "i",
    RenderKind.WARNING: "!",
    RenderKind.ERROR: "x",
    RenderKind.SUCCESS: "+",
}


class RichTerminal:
    """PresentationPort implementation backed by a rich Console."""

    def __init__(
        self,
        settings: TerminalSettings | None = None,
        *,
        title: str = "dtrader-crypto 2.0",
        subtitle: str = "Console trading bot for Gate.io",
        show_error_details: bool = False,
        console: Console | None = None,
        stdin: TextIO | None = None,
    ):
        self.settings = settings or TerminalSettings()
        self.title = title
        self.subtitle = subtitle
        self.show_error_details = show_error_details
        self.console = console or Console(no_color=not self.settings.colors, highlight=False)
        self._stdin = stdin or sys.stdin

        self._key_callback: KeyCallback | None = None
        self._resize_callback: ResizeCallback | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._fd: int | None = None
        self._saved_attrs: list[Any] | None = None
        self._input_captured = False
        self._watching_resize = False
        self._last_size: tuple[int, int] | None = None

    @property
    def is_input_captured(self) -> bool:
        return self._input_captured

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #

    def render(self, kind: RenderKind, text: str, detail: BaseException | None = None) -> None:
        kind = RenderKind(kind)
        style = _STYLES[kind]
        icons = _ICONS_UNICODE if self.settings.unicode else _ICONS_ASCII

        line = Text.assemble((f"{icons[kind]} ", f"bold {style}"), (text, style))
        if detail is not None:
            if self.show_error_details:
                line.append(f"\n  Details: {type(detail).__name__}: {detail}", style="bright_black")
            else:
                line.append(f": {detail}", style=style)
        self.console.print(line)

    def show_welcome(self, session: SessionDescriptor) -> None:
        self.console.clear()

        header = Panel(
            Align.center(Group(Text(self.title, style="bold"), Text(self.subtitle))),
            box=box.DOUBLE if self.settings.unicode else box.ASCII,
            style="bold cyan",
            width=64,
            padding=(1, 2),
        )
        self.console.print(header)

        started = session.started_at.astimezone().strftime("%d.%m.%Y %H:%M:%S")
        self.console.print(Text(f"Version: {session.version}", style="yellow"))
        self.console.print(Text(f"Environment: {session.environment.value}", style="yellow"))
        self.console.print(Text(f"Python: {platform.python_version()}", style="yellow"))
        self.console.print(Text(f"Started at: {started}", style="yellow"))
        self.console.print(Text(f"Session ID: {session.id}", style="yellow"))
        self.console.print()

        self.console.print(Text("Controls:", style="bold"))
        self.console.print(Text.assemble("- Press ", ("Ctrl+X", "bold yellow"), " to exit cleanly"))
        self.console.print(Text.assemble("- Press ", ("Ctrl+C", "bold yellow"), " for an emergency stop"))
        self.console.print()

        mark = "✓" if self.settings.unicode else "+"
        for label, value in (
            ("Terminal interface", "Active"),
            ("Event bus", "Initialized"),
            ("System", "Ready"),
        ):
            self.console.print(Text.assemble((f"{mark} {label}: ", "green"), value))
        self.console.print()
        self.console.print(Text("Waiting for commands...", style="cyan"))
        self.console.print()

    def show_farewell(self) -> None:
        self.console.print()
        self.console.print(Text("Shutting down...", style="yellow"))
        self.console.print(Text("Saving state...", style="green"))
        self.console.print(Text("Disconnecting from the event bus...", style="green"))
        self.console.print(Text("Releasing resources...", style="green"))
        self.console.print()
        self.console.print(
            Text.assemble(("Thanks for using ", "bold cyan"), (self.title, "bold"), ("!", "bold cyan"))
        )
        self.console.print(Text("Goodbye!", style="cyan"))
        self.console.print()

    def size(self) -> tuple[int, int]:
        width, height = self.console.size
        return width, height

    # ------------------------------------------------------------------ #
    # Callbacks
    # ------------------------------------------------------------------ #

    def on_key(self, callback: KeyCallback) -> None:
        self._key_callback = callback

    def on_resize(self, callback: ResizeCallback) -> None:
        self._resize_callback = callback
        self._watch_resize()

    # ------------------------------------------------------------------ #
    # Input capture
    # ------------------------------------------------------------------ #

    def capture_input(self) -> None:
        """
        Put stdin in key-at-a-time mode and start reading it from the loop.

        Raises:
            RuntimeError: no running event loop, unsupported platform, or stdin
                is not a terminal.
        """
        if not self.settings.grab_input:
            logger.debug("Input capture disabled by configuration")
            return
        if self._input_captured:
            return
        if sys.platform == "win32":
            raise RuntimeError("Keyboard capture is not supported on Windows")

        fd = self._stdin.fileno()
        if not os.isatty(fd):
            raise RuntimeError("stdin is not a terminal, keyboard capture unavailable")

        loop = asyncio.get_running_loop()
        self._loop = loop
        self._fd = fd
        self._saved_attrs = termios.tcgetattr(fd)

        attrs = termios.tcgetattr(fd)
        # No line buffering, no echo, Ctrl+C/Ctrl+Z arrive as bytes
        attrs[3] &= ~(termios.ICANON | termios.ECHO | termios.ISIG | termios.IEXTEN)
        attrs[0] &= ~(termios.IXON | termios.ICRNL)
        attrs[6][termios.VMIN] = 1
        attrs[6][termios.VTIME] = 0
        termios.tcsetattr(fd, termios.TCSANOW, attrs)

        loop.add_reader(fd, self._on_readable)
        self._input_captured = True
        self._watch_resize()
        logger.debug("Keyboard input captured")

    def release_input(self) -> None:
        """Stop reading stdin, restore its mode and stop watching resizes. Idempotent."""
        if self._watching_resize and self._loop is not None:
            self._loop.remove_signal_handler(signal.SIGWINCH)
            self._watching_resize = False

        if not self._input_captured:
            return

        self._input_captured = False
        if self._loop is not None and self._fd is not None:
            self._loop.remove_reader(self._fd)
        if self._fd is not None and self._saved_attrs is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved_attrs)
        self._saved_attrs = None
        logger.debug("Keyboard input released")

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, 1024)
        except BlockingIOError:
            return

        if not data:
            # EOF: nothing more will ever arrive
            logger.debug("stdin reached EOF")
            if self._loop is not None and self._fd is not None:
                self._loop.remove_reader(self._fd)
            return

        if self._key_callback is None:
            return
        for name, raw in iter_keys(data):
            self._key_callback(name, raw)

    # ------------------------------------------------------------------ #
    # Resize
    # ------------------------------------------------------------------ #

    def _watch_resize(self) -> None:
        if self._watching_resize or self._resize_callback is None:
            return
        if not hasattr(signal, "SIGWINCH"):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Retried from capture_input once the loop runs
            return

        self._loop = loop
        self._last_size = self.size()
        loop.add_signal_handler(signal.SIGWINCH, self._handle_resize)
        self._watching_resize = True

    def _handle_resize(self) -> None:
        current = self.size()
        if current == self._last_size:
            return
        self._last_size = current
        if self._resize_callback is not None:
            self._resize_callback(*current)

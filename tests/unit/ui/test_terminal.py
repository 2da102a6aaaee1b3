"""
Tests for the rich terminal presentation adapter.

Output goes to an in-memory rich Console; keyboard capture is only checked
for its refusal paths, which need no real terminal.
"""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from dtrader.config.settings import TerminalSettings
from dtrader.domain.models import Environment, RenderKind, SessionDescriptor
from dtrader.ui.terminal import RichTerminal

pytestmark = pytest.mark.unit


def _terminal(*, unicode: bool = True, grab_input: bool = True, show_error_details: bool = False, stdin=None):
    output = io.StringIO()
    console = Console(file=output, width=100, height=30, color_system=None, force_terminal=False)
    terminal = RichTerminal(
        TerminalSettings(unicode=unicode, grab_input=grab_input),
        title="dtrader-crypto 2.0",
        show_error_details=show_error_details,
        console=console,
        stdin=stdin,
    )
    return terminal, output


class TestRender:
    @pytest.mark.parametrize(
        "kind,icon",
        [
            (RenderKind.INFO, "ℹ"),
            (RenderKind.WARNING, "⚠"),
            (RenderKind.ERROR, "✖"),
            (RenderKind.SUCCESS, "✔"),
        ],
    )
    def test_icons(self, kind, icon):
        terminal, output = _terminal()

        terminal.render(kind, "message")

        assert output.getvalue().strip() == f"{icon} message"

    def test_ascii_icons(self):
        terminal, output = _terminal(unicode=False)

        terminal.render(RenderKind.SUCCESS, "done")

        assert output.getvalue().strip() == "+ done"

    def test_accepts_kind_value(self):
        terminal, output = _terminal(unicode=False)

        terminal.render("warning", "careful")  # type: ignore[arg-type]

        assert "! careful" in output.getvalue()

    def test_error_detail_short(self):
        terminal, output = _terminal()

        terminal.render(RenderKind.ERROR, "Application error", ValueError("bad input"))

        assert "Application error: bad input" in output.getvalue()
        assert "Details" not in output.getvalue()

    def test_error_detail_verbose(self):
        terminal, output = _terminal(show_error_details=True)

        terminal.render(RenderKind.ERROR, "Application error", ValueError("bad input"))

        assert "Details: ValueError: bad input" in output.getvalue()


class TestScreens:
    def test_welcome_shows_session(self):
        terminal, output = _terminal()
        session = SessionDescriptor(version="2.0.0", environment=Environment.PRODUCTION, id="CAFEBABE")

        terminal.show_welcome(session)

        text = output.getvalue()
        assert "dtrader-crypto 2.0" in text
        assert "Version: 2.0.0" in text
        assert "Environment: production" in text
        assert "Session ID: CAFEBABE" in text
        assert "Ctrl+X" in text
        assert "Waiting for commands..." in text

    def test_farewell(self):
        terminal, output = _terminal()

        terminal.show_farewell()

        assert "Goodbye!" in output.getvalue()
        assert "Thanks for using dtrader-crypto 2.0!" in output.getvalue()

    def test_size_from_console(self):
        terminal, _ = _terminal()

        assert terminal.size() == (100, 30)


class TestInputCapture:
    def test_capture_disabled_by_settings(self):
        terminal, _ = _terminal(grab_input=False)

        terminal.capture_input()

        assert terminal.is_input_captured is False

    def test_capture_refuses_non_terminal(self, tmp_path):
        with open(tmp_path / "stdin.txt", "w+") as fake_stdin:
            terminal, _ = _terminal(stdin=fake_stdin)

            with pytest.raises(RuntimeError):
                terminal.capture_input()

        assert terminal.is_input_captured is False

    def test_release_without_capture_is_noop(self):
        terminal, _ = _terminal()

        terminal.release_input()
        terminal.release_input()

        assert terminal.is_input_captured is False

    def test_key_callback_receives_decoded_keys(self, monkeypatch):
        terminal, _ = _terminal()
        received = []
        terminal.on_key(lambda name, data: received.append((name, data)))
        terminal._fd = 0
        monkeypatch.setattr("dtrader.ui.terminal.os.read", lambda fd, n: b"a\x1b[A\x18")

        terminal._on_readable()

        assert received == [("a", b"a"), ("UP", b"\x1b[A"), ("CTRL_X", b"\x18")]

    def test_resize_callback_only_on_change(self):
        terminal, _ = _terminal()
        sizes = []
        terminal.on_resize(lambda w, h: sizes.append((w, h)))
        terminal._last_size = (80, 24)

        terminal._handle_resize()
        terminal._handle_resize()

        assert sizes == [(100, 30)]

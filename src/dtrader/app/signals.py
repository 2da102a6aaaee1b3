"""
Process-level hooks: OS signals and unhandled faults.

SIGINT/SIGTERM become an exit request on the orchestrator; exceptions nobody
caught (interpreter level or inside the event loop) go down its fatal path.
Every installer returns a callable that undoes it.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dtrader.app.orchestrator import LifecycleOrchestrator

EXIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_signal_handlers(
    orchestrator: LifecycleOrchestrator,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Route SIGINT/SIGTERM to ``orchestrator.request_exit``."""
    loop = loop or asyncio.get_running_loop()

    if sys.platform == "win32":
        # Windows: signal.signal runs in the main thread only.
        # Do NOT log in the handler, hop onto the loop instead.
        previous: dict[signal.Signals, Any] = {}

        def win_handler(signum: int, frame: Any) -> None:
            loop.call_soon_threadsafe(orchestrator.request_exit, signal.Signals(signum).name)

        for sig in EXIT_SIGNALS:
            previous[sig] = signal.signal(sig, win_handler)

        def uninstall_win() -> None:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return uninstall_win

    # Unix: loop.add_signal_handler runs the callback in loop context
    for sig in EXIT_SIGNALS:
        loop.add_signal_handler(sig, orchestrator.request_exit, sig.name)

    def uninstall() -> None:
        for sig in EXIT_SIGNALS:
            loop.remove_signal_handler(sig)

    return uninstall


def install_fault_hooks(
    orchestrator: LifecycleOrchestrator,
    loop: asyncio.AbstractEventLoop | None = None,
) -> Callable[[], None]:
    """Send uncaught exceptions and unhandled loop errors to ``orchestrator.handle_fatal``."""
    loop = loop or asyncio.get_running_loop()

    previous_excepthook = sys.excepthook
    previous_loop_handler = loop.get_exception_handler()

    def excepthook(
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            previous_excepthook(exc_type, exc, tb)
            return
        orchestrator.handle_fatal(exc, source="uncaught")

    def loop_exception_handler(_loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception")
        if error is None:
            error = RuntimeError(context.get("message", "Unhandled event loop error"))
        orchestrator.handle_fatal(error, source="asyncio")

    sys.excepthook = excepthook
    loop.set_exception_handler(loop_exception_handler)

    def uninstall() -> None:
        if sys.excepthook is excepthook:
            sys.excepthook = previous_excepthook
        loop.set_exception_handler(previous_loop_handler)

    return uninstall

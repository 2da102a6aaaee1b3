"""
Lifecycle Orchestrator.

Owns the process state machine (idle -> running -> stopping -> stopped) and
sequences shutdown across itself, the event bus and the presentation surface.

Shutdown sequence (runs at most once per process):
1. Publish app:stop
2. Farewell + release keyboard capture
3. Reset the event bus
4. Resolve the exit status after a short grace delay (buffered output flushes)

Any unhandled fault is a kill switch: it is rendered, then shutdown runs with a
failure exit status. There is no restart or retry policy.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from dtrader.config.settings import Settings
from dtrader.domain.errors import FatalError, LifecycleError
from dtrader.domain.events import EventKind
from dtrader.domain.models import LifecycleState, RenderKind, SessionDescriptor
from dtrader.observability.metrics import record_shutdown
from dtrader.ports.event_bus import EventBusPort, Subscription
from dtrader.ports.observability import ObservabilitySink
from dtrader.ports.presentation import PresentationPort

EXIT_OK = 0
EXIT_FATAL = 1

MAX_GRACE_DELAY = 0.1

# Keys that end the session
EXIT_KEYS = frozenset({"CTRL_X", "CTRL_C"})


class LifecycleOrchestrator:
    """
    Central coordinator of the console lifecycle.

    The bus is handed in already constructed; the orchestrator wires its own
    listeners onto it and bridges presentation input into bus events.
    """

    def __init__(
        self,
        bus: EventBusPort,
        presentation: PresentationPort,
        sink: ObservabilitySink,
        *,
        settings: Settings | None = None,
        session: SessionDescriptor | None = None,
        grace_delay: float | None = None,
    ):
        self.settings = settings or Settings()
        self.bus = bus
        self.presentation = presentation
        self.sink = sink
        self.session = session or SessionDescriptor(
            version=self.settings.app.version,
            environment=self.settings.environment,
        )

        if grace_delay is None:
            grace_delay = self.settings.shutdown.grace_delay_seconds
        self.grace_delay = min(max(float(grace_delay), 0.0), MAX_GRACE_DELAY)

        self._state = LifecycleState.IDLE
        self._exit_code: int | None = None
        self._exit_reason: str | None = None
        self._started_at: float | None = None
        self._stopped = asyncio.Event()
        self._subscriptions: list[Subscription] = []

        self._wire()

        self.sink.record(
            "info",
            "Orchestrator created",
            {"session_id": self.session.id, **self.session.to_dict()},
        )

    # ------------------------------------------------------------------ #
    # State
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == LifecycleState.RUNNING

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    @property
    def uptime_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return time.monotonic() - self._started_at

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot."""
        listeners = {kind.value: self.bus.listener_count(kind) for kind in self.bus.registered_kinds()}
        return {
            "state": self._state.value,
            "session": self.session.to_dict(),
            "uptime_seconds": round(self.uptime_seconds, 3),
            "exit_code": self._exit_code,
            "listeners": listeners,
        }

    # ------------------------------------------------------------------ #
    # Wiring
    # ------------------------------------------------------------------ #

    def _wire(self) -> None:
        handlers: list[tuple[EventKind, Callable[..., Any]]] = [
            (EventKind.APP_START, self._on_app_start),
            (EventKind.APP_STOP, self._on_app_stop),
            (EventKind.APP_ERROR, self._on_app_error),
            (EventKind.TERMINAL_EXIT, self._on_terminal_exit),
            (EventKind.TERMINAL_KEY, self._on_terminal_key),
            (EventKind.TERMINAL_RESIZE, self._on_terminal_resize),
            (EventKind.CONFIG_LOADED, self._on_config_loaded),
            (EventKind.CONFIG_ERROR, self._on_config_error),
        ]
        for kind, handler in handlers:
            self._subscriptions.append(self.bus.subscribe(kind, handler))

        self.presentation.on_key(self._on_key_input)
        self.presentation.on_resize(self._on_resize_input)

        self.sink.record("debug", "Event listeners wired", {"listener_count": len(handlers)})

    # ------------------------------------------------------------------ #
    # Transitions
    # ------------------------------------------------------------------ #

    def start(self) -> bool:
        """
        idle -> running.

        Returns:
            True if the console was started, False if it was already running.

        Raises:
            LifecycleError: the console is stopping, stopped, or already exited
                before it was started.
        """
        if self._state == LifecycleState.RUNNING:
            self.sink.record("warning", "Console already running", {"state": self._state.value})
            return False
        if self._state.is_terminal():
            raise LifecycleError(
                f"Cannot start a console that is {self._state.value}",
                state=self._state.value,
            )
        if self._stopped.is_set():
            raise LifecycleError(
                "Cannot start a console that already exited",
                state=self._state.value,
            )

        self.sink.record(
            "info",
            f"Starting {self.settings.app.name}",
            {
                "session_id": self.session.id,
                "version": self.session.version,
                "environment": self.session.environment.value,
            },
        )

        self._state = LifecycleState.RUNNING
        self._started_at = time.monotonic()

        self._present(self.presentation.show_welcome, self.session)
        try:
            self.presentation.capture_input()
        except Exception as e:
            self.sink.record("warning", f"Keyboard capture unavailable: {e}", {"exc_info": e})
            self.bus.publish(EventKind.APP_ERROR, e)

        self.bus.publish(EventKind.APP_START)
        return True

    def request_exit(self, reason: str = "signal") -> None:
        """
        Named transition for exit triggers coming from outside the bus (signals).

        Publishes terminal:exit while running; ends a console that never
        started with a clean status; a no-op otherwise.
        """
        if self._state == LifecycleState.RUNNING:
            self.sink.record("info", f"Exit requested ({reason})", {"source": reason})
            self._exit_reason = reason
            self.bus.publish(EventKind.TERMINAL_EXIT)
            return

        if self._state == LifecycleState.IDLE and not self._stopped.is_set():
            self.abort_startup(EXIT_OK, reason=reason)
            return

        self.sink.record(
            "info",
            f"Exit already in progress, ignoring {reason}",
            {"source": reason, "state": self._state.value},
        )

    def handle_fatal(self, error: BaseException, source: str = "uncaught") -> None:
        """Fatal path: render the fault, then shut down with a failure status."""
        self.sink.record(
            "critical",
            f"Unhandled fault ({source}): {error}",
            {"source": source, "error_type": type(error).__name__, "exc_info": error},
        )

        self._present(self.presentation.render, RenderKind.ERROR, "Unhandled error", error)

        if self._state.is_terminal() or self._stopped.is_set():
            # Sequence already ran or was never needed: only the status changes
            self._exit_code = EXIT_FATAL
            return

        if self._state == LifecycleState.IDLE:
            self.abort_startup(EXIT_FATAL, reason=f"fatal:{source}")
            return

        self.shutdown(exit_code=EXIT_FATAL, reason=f"fatal:{source}")

    def shutdown(self, *, exit_code: int = EXIT_OK, reason: str = "requested") -> bool:
        """
        running -> stopping; schedules stopping -> stopped.

        Returns:
            True if this call ran the sequence, False if it was a no-op.
        """
        if self._state.is_terminal():
            self.sink.record(
                "info",
                "Shutdown already in progress, ignoring request",
                {"state": self._state.value, "source": reason},
            )
            return False

        if self._state == LifecycleState.IDLE:
            self.sink.record("warning", "Shutdown requested before start, ignoring", {"source": reason})
            return False

        self._state = LifecycleState.STOPPING
        self._exit_code = exit_code
        started = time.perf_counter()
        self.sink.record("info", "Starting graceful shutdown", {"source": reason, "exit_code": exit_code})

        # Step 1: announce
        try:
            self.bus.publish(EventKind.APP_STOP)
        except Exception as e:
            self.sink.record("error", f"Publishing app:stop failed: {e}", {"exc_info": e})

        # Step 2: presentation teardown
        self._present(self.presentation.show_farewell)
        self._present(self.presentation.release_input)

        # Step 3: drop every registration
        try:
            self.bus.reset()
        except Exception as e:
            self.sink.record("error", f"Event bus reset failed: {e}", {"exc_info": e})
        self._subscriptions.clear()

        duration = time.perf_counter() - started
        record_shutdown(reason=reason, exit_code=exit_code, duration_seconds=duration)
        self.sink.record(
            "info",
            "Shutdown sequence complete",
            {"source": reason, "exit_code": exit_code, "duration_seconds": round(duration, 4)},
        )

        # Step 4: exit after the grace delay
        self._schedule_exit()
        return True

    def abort_startup(self, exit_code: int, *, reason: str = "aborted") -> bool:
        """
        End a console that was never started.

        Releases the presentation surface and resolves ``wait_stopped()`` with
        ``exit_code``. The state stays idle (there is no idle -> stopped
        transition); ``start()`` is refused afterwards.

        Returns:
            True if the console was ended, False if it was not idle or had
            already been ended.
        """
        if self._state != LifecycleState.IDLE or self._stopped.is_set():
            self.sink.record(
                "info",
                "Console not idle, ignoring abort",
                {"source": reason, "state": self._state.value},
            )
            return False

        self.sink.record(
            "warning",
            f"Console exiting before start ({reason})",
            {"source": reason, "exit_code": exit_code},
        )
        self._present(self.presentation.release_input)
        self._resolve(exit_code)
        return True

    async def wait_stopped(self) -> int:
        """Wait until the process may exit; returns the exit status."""
        await self._stopped.wait()
        return self._exit_code if self._exit_code is not None else EXIT_OK

    def _schedule_exit(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Interpreter is already unwinding (sys.excepthook): no loop left to wait on
            self._finish()
            return
        loop.call_later(self.grace_delay, self._finish)

    def _finish(self) -> None:
        # A fatal fault during stopping may have raised the status since the sequence ran
        self._state = LifecycleState.STOPPED
        self._resolve(self._exit_code if self._exit_code is not None else EXIT_OK)

    def _resolve(self, exit_code: int) -> None:
        self._exit_code = exit_code
        self._stopped.set()
        self.sink.record(
            "info",
            "Console stopped",
            {"exit_code": exit_code, "state": self._state.value, "session_id": self.session.id},
        )

    # ------------------------------------------------------------------ #
    # Bus listeners
    # ------------------------------------------------------------------ #

    def _on_app_start(self) -> None:
        self.sink.record("info", "Application started", {"session_id": self.session.id})
        self._present(self.presentation.render, RenderKind.SUCCESS, "Application started successfully")

    def _on_app_stop(self) -> None:
        self.sink.record(
            "info",
            "Application stopped",
            {"uptime_seconds": round(self.uptime_seconds, 3), "session_id": self.session.id},
        )
        self._present(self.presentation.render, RenderKind.INFO, "Stopping trading bot...")

    def _on_app_error(self, error: BaseException) -> None:
        self.sink.record(
            "error",
            f"Application error: {error}",
            {"error_type": type(error).__name__, "exc_info": error},
        )
        self._present(self.presentation.render, RenderKind.ERROR, "Application error", error)

        if isinstance(error, FatalError):
            self.shutdown(exit_code=EXIT_FATAL, reason="fatal:app:error")

    def _on_terminal_exit(self) -> None:
        reason = self._exit_reason or EventKind.TERMINAL_EXIT.value
        self.sink.record("info", "Handling exit request", {"source": reason})
        self.shutdown(exit_code=EXIT_OK, reason=reason)

    def _on_terminal_key(self, key_name: str, data: bytes) -> None:
        self.sink.record("debug", "Key pressed", {"key": key_name})
        if self.session.is_development:
            stamp = datetime.now().strftime("%H:%M:%S")
            self._present(self.presentation.render, RenderKind.INFO, f"[{stamp}] Key pressed: {key_name}")

    def _on_terminal_resize(self, width: int, height: int) -> None:
        self.sink.record("debug", "Terminal resized", {"width": width, "height": height})
        if self.session.is_development:
            self._present(self.presentation.render, RenderKind.INFO, f"Terminal resized: {width}x{height}")

    def _on_config_loaded(self, config: Any) -> None:
        self.sink.record("info", "Configuration loaded", {"sections": sorted(config)})

    def _on_config_error(self, error: BaseException) -> None:
        self.sink.record("error", f"Configuration error: {error}", {"exc_info": error})
        self._present(self.presentation.render, RenderKind.ERROR, "Configuration error", error)

    # ------------------------------------------------------------------ #
    # Presentation input bridge
    # ------------------------------------------------------------------ #

    def _on_key_input(self, key_name: str, data: bytes) -> None:
        if self._state != LifecycleState.RUNNING:
            return
        if key_name in EXIT_KEYS:
            self._exit_reason = key_name
            self.bus.publish(EventKind.TERMINAL_EXIT)
            return
        self.bus.publish(EventKind.TERMINAL_KEY, key_name, bytes(data))

    def _on_resize_input(self, width: int, height: int) -> None:
        if self._state != LifecycleState.RUNNING:
            return
        self.bus.publish(EventKind.TERMINAL_RESIZE, int(width), int(height))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _present(self, action: Callable[..., Any], *args: Any) -> bool:
        """Call the presentation surface; its faults are reported, never raised."""
        try:
            action(*args)
        except Exception as e:
            name = getattr(action, "__name__", repr(action))
            self.sink.record("error", f"Presentation call {name} failed: {e}", {"exc_info": e})
            return False
        return True

"""
In-Memory Event Bus Implementation.

Synchronous typed pub/sub for console events.
Listener exceptions are reported through the observability sink (not propagated).
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from dtrader.domain.errors import ListenerSignatureError
from dtrader.domain.events import EventKind, shape_of
from dtrader.observability.sink import LoggingSink
from dtrader.ports.event_bus import DispatchObserver, EventBusPort, Listener, Subscription
from dtrader.ports.observability import ObservabilitySink

DEFAULT_MAX_LISTENERS = 50


class InMemoryEventBus(EventBusPort):
    """
    In-memory event bus with per-kind fan-out lists.

    Features:
    - Fixed argument shape per kind, checked on subscribe and on publish
    - Listeners run synchronously, in registration order
    - Exception isolation (one failing listener doesn't affect others)
    - Snapshot before fan-out, so listeners may publish/subscribe re-entrantly
    - Dispatch observers around every fan-out (debug logging, metrics)
    - Coroutine listeners are scheduled on the running loop; a failing one
      is escalated to the loop exception handler (a process fault)
    """

    def __init__(
        self,
        sink: ObservabilitySink | None = None,
        *,
        max_listeners: int = DEFAULT_MAX_LISTENERS,
        observers: Iterable[DispatchObserver] = (),
    ):
        self._sink: ObservabilitySink = sink or LoggingSink.for_module(__name__)
        self._max_listeners = max(0, int(max_listeners))
        self._registrations: dict[EventKind, list[Subscription]] = defaultdict(list)
        self._observers: list[DispatchObserver] = list(observers)
        self._ceiling_warned: set[EventKind] = set()
        self._pending_tasks: set[asyncio.Task] = set()

    @property
    def max_listeners(self) -> int:
        return self._max_listeners

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(self, kind: EventKind | str, listener: Listener) -> Subscription:
        """Subscribe a listener to an event kind."""
        return self._add(EventKind.parse(kind), listener, once=False)

    def subscribe_once(self, kind: EventKind | str, listener: Listener) -> Subscription:
        """Subscribe a listener that is removed before its first invocation."""
        return self._add(EventKind.parse(kind), listener, once=True)

    def unsubscribe(self, kind: EventKind | str, listener: Listener | Subscription) -> bool:
        """
        Remove a registration.

        A Subscription handle removes exactly that registration; a bare callable
        removes its most recent registration for ``kind``.
        """
        resolved = EventKind.parse(kind)
        registrations = self._registrations.get(resolved)
        if not registrations:
            return False

        index = self._find(registrations, listener)
        if index is None:
            return False

        removed = registrations.pop(index)
        if not registrations:
            del self._registrations[resolved]

        self._sink.record(
            "debug",
            "Listener removed",
            {
                "event_kind": resolved.value,
                "listener": removed.listener_name,
                "listener_count": len(registrations),
            },
        )
        return True

    def reset(self) -> None:
        """Remove all listeners from all kinds and cancel in-flight coroutine listeners."""
        total = sum(len(regs) for regs in self._registrations.values())
        self._registrations.clear()
        self._ceiling_warned.clear()

        cancelled = 0
        for task in list(self._pending_tasks):
            if not task.done():
                task.cancel()
                cancelled += 1
        self._pending_tasks.clear()

        self._sink.record(
            "debug",
            "Event bus cleared",
            {"previous_listener_count": total, "cancelled_tasks": cancelled},
        )

    # ------------------------------------------------------------------ #
    # Observers
    # ------------------------------------------------------------------ #

    def add_observer(self, observer: DispatchObserver) -> None:
        self._observers.append(observer)

    def remove_observer(self, observer: DispatchObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def publish(self, kind: EventKind | str, *args: Any) -> bool:
        """
        Publish an event to every listener of ``kind``.

        Raises:
            UnknownEventKindError: ``kind`` is not part of the closed set.
            EventPayloadError: ``args`` does not match the kind's shape.
        """
        resolved = EventKind.parse(kind)
        shape_of(resolved).validate(args)

        live = self._registrations.get(resolved)
        snapshot = list(live) if live else []

        # Once-listeners leave the live table before anything runs, so a
        # re-entrant publish of the same kind can't reach them again.
        for sub in snapshot:
            if sub.once:
                self._discard(resolved, sub)

        self._notify_before(resolved, args, len(snapshot))

        failures = 0
        for sub in snapshot:
            if not self._invoke(resolved, sub, args):
                failures += 1

        self._notify_after(resolved, len(snapshot) - failures, failures)
        return bool(snapshot)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def listener_count(self, kind: EventKind | str) -> int:
        return len(self._registrations.get(EventKind.parse(kind), ()))

    def has_listeners(self, kind: EventKind | str) -> bool:
        return self.listener_count(kind) > 0

    def registered_kinds(self) -> list[EventKind]:
        return [kind for kind, regs in self._registrations.items() if regs]

    def listener_info(self) -> dict[str, int]:
        """Current listener count per kind, keyed by wire name."""
        return {kind.value: len(regs) for kind, regs in self._registrations.items() if regs}

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _add(self, kind: EventKind, listener: Listener, *, once: bool) -> Subscription:
        self._check_signature(kind, listener)

        sub = Subscription(kind=kind, listener=listener, once=once)
        registrations = self._registrations[kind]
        registrations.append(sub)

        self._sink.record(
            "debug",
            "Listener added",
            {
                "event_kind": kind.value,
                "listener": sub.listener_name,
                "once": once,
                "listener_count": len(registrations),
            },
        )

        if (
            self._max_listeners
            and len(registrations) > self._max_listeners
            and kind not in self._ceiling_warned
        ):
            self._ceiling_warned.add(kind)
            self._sink.record(
                "warning",
                "Possible listener leak: listener ceiling exceeded",
                {
                    "event_kind": kind.value,
                    "listener_count": len(registrations),
                    "max_listeners": self._max_listeners,
                },
            )

        return sub

    @staticmethod
    def _check_signature(kind: EventKind, listener: Listener) -> None:
        """
        Ensure the listener can be called with the kind's argument tuple.

        Catches mis-registered listeners at subscription time rather than
        failing later at publish time.
        """
        if not callable(listener):
            raise ListenerSignatureError(
                f"Listener for {kind} must be callable, got {type(listener).__name__}",
                kind=kind.value,
            )

        try:
            sig = inspect.signature(listener)
        except (TypeError, ValueError):
            # Built-ins or C-level callables may not expose a signature cleanly.
            return

        arity = shape_of(kind).arity
        try:
            sig.bind(*([None] * arity))
        except TypeError:
            name = getattr(listener, "__qualname__", None) or repr(listener)
            raise ListenerSignatureError(
                f"Listener '{name}' cannot accept {arity} argument(s) of {kind}",
                kind=kind.value,
                details={"listener": name, "arity": arity},
            ) from None

    @staticmethod
    def _find(registrations: list[Subscription], target: Listener | Subscription) -> int | None:
        for index in range(len(registrations) - 1, -1, -1):
            sub = registrations[index]
            if isinstance(target, Subscription):
                if sub is target:
                    return index
            elif sub.listener == target:
                return index
        return None

    def _discard(self, kind: EventKind, sub: Subscription) -> None:
        registrations = self._registrations.get(kind)
        if not registrations:
            return
        for index, candidate in enumerate(registrations):
            if candidate is sub:
                del registrations[index]
                break
        if not registrations:
            del self._registrations[kind]

    def _invoke(self, kind: EventKind, sub: Subscription, args: tuple[Any, ...]) -> bool:
        """Call one listener with exception isolation. Returns False on failure."""
        try:
            result = sub.listener(*args)
        except Exception as e:
            self._report_fault(kind, sub, e)
            return False

        if inspect.isawaitable(result):
            self._schedule(kind, sub, result)
        return True

    def _schedule(self, kind: EventKind, sub: Subscription, awaitable: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            # No running loop: the coroutine can never run
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._report_fault(kind, sub, e)
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending_tasks.add(task)

        def _done(done: asyncio.Task) -> None:
            self._pending_tasks.discard(done)
            if done.cancelled():
                return
            exc = done.exception()
            if exc is None:
                return
            self._report_fault(kind, sub, exc)
            # Publish has already returned, so this is a process fault, not a listener fault
            loop.call_exception_handler(
                {
                    "message": f"Coroutine listener {sub.listener_name} failed for {kind}",
                    "exception": exc,
                    "task": done,
                }
            )

        task.add_done_callback(_done)

    def _report_fault(self, kind: EventKind, sub: Subscription, error: BaseException) -> None:
        self._sink.record(
            "error",
            f"Listener {sub.listener_name} failed for {kind}: {error}",
            {
                "event_kind": kind.value,
                "listener": sub.listener_name,
                "error_type": type(error).__name__,
                "error": str(error),
                "exc_info": error,
            },
        )

    def _notify_before(self, kind: EventKind, args: tuple[Any, ...], count: int) -> None:
        for observer in list(self._observers):
            try:
                observer.before_dispatch(kind, args, count)
            except Exception as e:
                self._report_observer_fault(kind, observer, e)

    def _notify_after(self, kind: EventKind, delivered: int, failures: int) -> None:
        for observer in list(self._observers):
            try:
                observer.after_dispatch(kind, delivered, failures)
            except Exception as e:
                self._report_observer_fault(kind, observer, e)

    def _report_observer_fault(self, kind: EventKind, observer: DispatchObserver, error: Exception) -> None:
        self._sink.record(
            "error",
            f"Dispatch observer {type(observer).__name__} failed for {kind}: {error}",
            {"event_kind": kind.value, "observer": type(observer).__name__, "exc_info": error},
        )

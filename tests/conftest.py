"""Shared fixtures for dtrader tests."""

from __future__ import annotations

import logging

import pytest

from dtrader.adapters.messaging import InMemoryEventBus
from dtrader.app.orchestrator import LifecycleOrchestrator
from dtrader.config.settings import Settings, get_settings
from dtrader.domain.models import Environment, SessionDescriptor
from tests.mocks import FakePresentation, RecordingSink


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Keep host environment variables out of settings under test."""
    for name in (
        "DTRADER_ENV",
        "NODE_ENV",
        "LOG_LEVEL",
        "LOG_DIR",
        "LOG_FILE",
        "LOG_MASK_SENSITIVE",
        "TERMINAL_COLORS",
        "TERMINAL_UNICODE",
        "EVENT_BUS_MAX_LISTENERS",
        "GATE_API_KEY",
        "GATE_SECRET_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    """Development settings that need no credentials."""
    return Settings(
        environment=Environment.DEVELOPMENT,
        credentials={"required": False},
    )


@pytest.fixture
def production_settings() -> Settings:
    return Settings(
        environment=Environment.PRODUCTION,
        credentials={"api_key": "key", "secret_key": "secret"},
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def presentation() -> FakePresentation:
    return FakePresentation()


@pytest.fixture
def bus(sink) -> InMemoryEventBus:
    return InMemoryEventBus(sink)


@pytest.fixture
def make_orchestrator(bus, sink, settings):
    """Factory: orchestrator wired to the shared bus and sink."""

    def _make(
        presentation: FakePresentation | None = None,
        *,
        settings_override: Settings | None = None,
        grace_delay: float = 0.0,
    ) -> LifecycleOrchestrator:
        active = settings_override or settings
        return LifecycleOrchestrator(
            bus,
            presentation or FakePresentation(),
            sink,
            settings=active,
            session=SessionDescriptor(version=active.app.version, environment=active.environment),
            grace_delay=grace_delay,
        )

    return _make


@pytest.fixture
def restore_root_logger():
    """setup_logging replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)

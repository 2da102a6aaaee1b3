"""
Entry points for console commands.

Each command sets up the environment and runs the appropriate logic.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Load .env file BEFORE importing settings
from dotenv import load_dotenv

# Try multiple paths to find .env
for env_path in [
    Path.cwd() / ".env",  # Current working directory
    Path(__file__).parent.parent.parent.parent / ".env",  # Project root
]:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    load_dotenv()  # Fallback: search default locations

from pydantic import ValidationError  # noqa: E402

from dtrader.adapters.messaging import InMemoryEventBus  # noqa: E402
from dtrader.app.orchestrator import LifecycleOrchestrator  # noqa: E402
from dtrader.app.signals import install_fault_hooks, install_signal_handlers  # noqa: E402
from dtrader.config.settings import Settings, get_settings  # noqa: E402
from dtrader.domain.errors import ConfigurationError  # noqa: E402
from dtrader.domain.events import EventKind  # noqa: E402
from dtrader.observability.logging import get_logger, setup_logging  # noqa: E402
from dtrader.observability.metrics import MetricsDispatchObserver  # noqa: E402
from dtrader.observability.sink import DebugDispatchObserver, LoggingSink  # noqa: E402
from dtrader.ports.presentation import PresentationPort  # noqa: E402
from dtrader.ui.terminal import RichTerminal  # noqa: E402

EXIT_CONFIG = 2


def _log_startup_banner(logger, *, env: str, settings: Settings) -> None:
    logger.warning("========================================================")
    logger.warning(f"STARTING {settings.app.name} v{settings.app.version}")
    logger.warning(
        f"env={env} | python={sys.version.split()[0]} | bus_debug={settings.bus_debug_enabled}"
    )
    logger.warning(
        "terminal: "
        f"colors={settings.terminal.colors} "
        f"unicode={settings.terminal.unicode} "
        f"grab_input={settings.terminal.grab_input}"
    )
    logger.warning(
        "event_bus: "
        f"max_listeners={settings.event_bus.max_listeners} "
        f"shutdown_grace={settings.shutdown.grace_delay_seconds}s"
    )
    logger.warning("========================================================")


def build_console(
    settings: Settings,
    *,
    presentation: PresentationPort | None = None,
) -> tuple[InMemoryEventBus, LifecycleOrchestrator]:
    """Assemble bus, presentation and orchestrator for ``settings``."""
    observers = [MetricsDispatchObserver()]
    if settings.bus_debug_enabled:
        observers.append(DebugDispatchObserver())

    bus = InMemoryEventBus(
        LoggingSink.for_module("dtrader.bus"),
        max_listeners=settings.event_bus.max_listeners,
        observers=observers,
    )
    terminal = presentation or RichTerminal(
        settings.terminal,
        title=settings.app.name,
        show_error_details=settings.is_development,
    )
    orchestrator = LifecycleOrchestrator(
        bus,
        terminal,
        LoggingSink.for_module("dtrader.lifecycle"),
        settings=settings,
    )
    return bus, orchestrator


async def run_console(
    env: str = "development",
    *,
    settings: Settings | None = None,
    presentation: PresentationPort | None = None,
) -> int:
    """
    Main console entry point.

    Loads configuration, assembles the console and runs it until an exit key,
    a signal or a fatal error ends the session.

    Args:
        env: Environment name for configuration loading ("development", "production").
        settings: Pre-built settings (skips loading from YAML/env).
        presentation: Presentation surface override (defaults to the rich terminal).

    Returns:
        Exit code: 0 = clean exit, 1 = fatal error, 2 = configuration error.

    Note:
        On Windows, signal handling runs in the main thread only and keyboard
        capture is unavailable.
    """
    if settings is None:
        try:
            settings = get_settings(env)
        except (ValidationError, FileNotFoundError, ValueError) as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return EXIT_CONFIG

    # Setup logging
    setup_logging(settings)
    logger = get_logger(__name__)

    _log_startup_banner(logger, env=env, settings=settings)

    bus, orchestrator = build_console(settings, presentation=presentation)

    errors = settings.validate_for_startup()
    if errors:
        for error in errors:
            logger.error(error)
        logger.error("Aborting startup due to configuration errors.")
        bus.publish(EventKind.CONFIG_ERROR, ConfigurationError("; ".join(errors), problems=errors))
        orchestrator.abort_startup(EXIT_CONFIG, reason=EventKind.CONFIG_ERROR.value)
        return EXIT_CONFIG

    bus.publish(EventKind.CONFIG_LOADED, settings.redacted())

    loop = asyncio.get_running_loop()
    uninstall_signals = install_signal_handlers(orchestrator, loop)
    uninstall_hooks = install_fault_hooks(orchestrator, loop)

    try:
        orchestrator.start()
        exit_code = await orchestrator.wait_stopped()
    except asyncio.CancelledError:
        logger.info("Console task cancelled, shutting down...")
        orchestrator.shutdown(reason="cancelled")
        raise
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        orchestrator.handle_fatal(e, source="main")
        exit_code = await orchestrator.wait_stopped()
    finally:
        uninstall_hooks()
        uninstall_signals()

    logger.info(f"Console stopped (exit code {exit_code})")
    return exit_code


async def run_doctor(env: str = "development") -> int:
    """Run preflight checks."""
    try:
        settings = get_settings(env)
    except (ValidationError, FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    # Doctor output goes to the console, not only to the log file
    settings = settings.model_copy(
        update={"logging": settings.logging.model_copy(update={"console_enabled": True})}
    )
    setup_logging(settings)
    logger = get_logger(__name__)

    logger.info("Running preflight checks...")

    checks_passed = 0
    checks_failed = 0

    # Check 1: configuration
    errors = settings.validate_for_startup()
    if errors:
        for error in errors:
            logger.error(f"[FAIL] {error}")
        checks_failed += 1
    else:
        logger.info("[OK] Configuration valid")
        checks_passed += 1

    # Check 2: Logs directory
    logs_dir = Path(settings.logging.dir)
    if logs_dir.exists():
        logger.info("[OK] Logs directory exists")
    else:
        logs_dir.mkdir(parents=True, exist_ok=True)
        logger.info("[OK] Logs directory created")
    checks_passed += 1

    # Check 3: Interactive terminal
    if not settings.terminal.grab_input:
        logger.info("[OK] Keyboard capture disabled, no terminal needed")
        checks_passed += 1
    elif sys.platform == "win32":
        logger.warning("[WARN] Keyboard capture is not supported on Windows")
    elif sys.stdin is not None and sys.stdin.isatty():
        logger.info("[OK] stdin is a terminal")
        checks_passed += 1
    else:
        logger.warning("[WARN] stdin is not a terminal, keyboard capture will be unavailable")

    # Summary
    logger.info(f"Preflight: {checks_passed} passed, {checks_failed} failed")

    return 0 if checks_failed == 0 else 1

"""
Structured logging setup.

Provides both text and JSON logging with sensitive data masking.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from dtrader.config.settings import Settings

__all__ = [
    "setup_logging",
    "get_logger",
    "mask_sensitive",
    "SensitiveDataFilter",
    "JSONFormatter",
    "ConsoleLogFormatter",
    "STRUCTURED_FIELDS",
]

# Record attributes copied into JSON output when present
STRUCTURED_FIELDS = (
    "event_kind",
    "listener",
    "listener_count",
    "session_id",
    "state",
    "source",
    "exit_code",
    "metadata",
)

SENSITIVE_KEYS = (
    "apikey",
    "api_key",
    "secretkey",
    "secret_key",
    "passphrase",
    "password",
    "token",
    "authorization",
    "secret",
    "privatekey",
    "private_key",
)

MASKED = "***MASKED***"


def mask_sensitive(value: Any) -> Any:
    """Return a copy of ``value`` with string values under sensitive keys masked."""
    if isinstance(value, Mapping):
        masked: dict[str, Any] = {}
        for key, item in value.items():
            key_lower = str(key).lower()
            if isinstance(item, str) and any(field in key_lower for field in SENSITIVE_KEYS):
                masked[key] = MASKED
            else:
                masked[key] = mask_sensitive(item)
        return masked
    if isinstance(value, list | tuple):
        return [mask_sensitive(item) for item in value]
    return value


class SensitiveDataFilter(logging.Filter):
    """Filter that masks sensitive data (API keys, secrets) in log messages."""

    SENSITIVE_PATTERNS = [
        (re.compile(r"(api[_-]?key['\"]?\s*[:=]\s*['\"]?)([a-zA-Z0-9]{16,})(['\"]?)", re.IGNORECASE), r"\1***MASKED***\3"),
        (re.compile(r"(secret(?:[_-]?key)?['\"]?\s*[:=]\s*['\"]?)([a-zA-Z0-9]{16,})(['\"]?)", re.IGNORECASE), r"\1***MASKED***\3"),
        (re.compile(r"(token['\"]?\s*[:=]\s*['\"]?)([a-zA-Z0-9]{16,})(['\"]?)", re.IGNORECASE), r"\1***MASKED***\3"),
        (re.compile(r"(passphrase['\"]?\s*[:=]\s*['\"]?)([^\s'\",]+)(['\"]?)", re.IGNORECASE), r"\1***MASKED***\3"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        original_msg = str(record.getMessage())
        masked_msg = original_msg

        for pattern, replacement in self.SENSITIVE_PATTERNS:
            masked_msg = pattern.sub(replacement, masked_msg)

        if masked_msg != original_msg:
            record.msg = masked_msg
            record.args = ()

        metadata = getattr(record, "metadata", None)
        if isinstance(metadata, Mapping):
            record.metadata = mask_sensitive(metadata)

        return True


class ConsoleJSONEncoder(json.JSONEncoder):
    """JSON encoder for datetimes, enums and arbitrary objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, bytes | bytearray):
            return obj.hex()
        if isinstance(obj, BaseException):
            return f"{type(obj).__name__}: {obj}"
        return str(obj)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields if present
        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, cls=ConsoleJSONEncoder)


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """
    Set up logging with console, file and JSON handlers as configured.

    Returns the root logger.
    """
    if settings is None:
        from dtrader.config.settings import get_settings

        settings = get_settings()

    # Get log level
    level = getattr(logging, settings.logging.level.upper(), logging.INFO)
    if settings.bus_debug_enabled and level > logging.DEBUG:
        level = logging.DEBUG

    # Create root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Clear existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    filters: list[logging.Filter] = []
    if settings.logging.mask_sensitive:
        filters.append(SensitiveDataFilter())

    # Console handler (stderr, so it never interleaves with the rich screen on stdout)
    if settings.logging.console_enabled:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(ConsoleLogFormatter(colors=settings.terminal.colors))
        _attach(console_handler, filters, root_logger)

    logs_dir = Path(settings.logging.dir)

    # File handler (text format)
    if settings.logging.file_enabled:
        logs_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        file_handler = logging.FileHandler(logs_dir / f"dtrader_{timestamp}.log", encoding="utf-8")
        file_handler.setLevel(level)

        # Keep standard format for files (no colors, full timestamp)
        file_fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        file_handler.setFormatter(file_fmt)
        _attach(file_handler, filters, root_logger)

    # JSON file handler (if enabled)
    if settings.logging.json_enabled:
        json_path = Path(settings.logging.json_file)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        max_bytes = int(settings.logging.json_max_bytes or 0)
        backup_count = int(settings.logging.json_backup_count or 0)
        if max_bytes > 0 and backup_count > 0:
            json_handler: logging.Handler = RotatingFileHandler(
                json_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
        else:
            json_handler = logging.FileHandler(json_path, encoding="utf-8")
        json_handler.setLevel(level)
        json_handler.setFormatter(JSONFormatter())
        _attach(json_handler, filters, root_logger)

    # Reduce noise from verbose libraries
    for lib in ["asyncio", "markdown_it"]:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root_logger


def _attach(handler: logging.Handler, filters: list[logging.Filter], root: logging.Logger) -> None:
    for flt in filters:
        handler.addFilter(flt)
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger."""
    return logging.getLogger(name)


class ConsoleLogFormatter(logging.Formatter):
    """
    Custom formatter for console output with colors and simplified structure.

    Levels:
    - DEBUG: Grey
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Bold Red

    The module name is shown in brackets, the way log lines carried
    ``[module]`` before the level in the earlier console.
    """

    # ANSI Colors
    RESET = "\033[0m"
    GREY = "\033[90m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    BOLD_RED = "\033[1;91m"

    LEVEL_COLORS = {
        "DEBUG": GREY,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": BOLD_RED,
    }

    def __init__(self, *, colors: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self._colors = colors
        self._formatters: dict[str, logging.Formatter] = {}
        for level_name, color in self.LEVEL_COLORS.items():
            if colors:
                fmt = f"{color}[%(asctime)s] [%(name)s] {level_name.lower()}:{self.RESET} %(message)s"
            else:
                fmt = f"[%(asctime)s] [%(name)s] {level_name.lower()}: %(message)s"
            self._formatters[level_name] = logging.Formatter(fmt, datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        formatter_key = record.levelname if record.levelname in self._formatters else "INFO"
        return self._formatters[formatter_key].format(record)

"""
Settings management using Pydantic.

Loads configuration from the bundled YAML file and environment variables.
Environment variables override YAML values.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from dtrader.domain.models import Environment

logger = logging.getLogger(__name__)

MASK = "***MASKED***"


class AppSettings(BaseModel):
    """Application identity."""

    name: str = "dtrader-crypto 2.0"
    version: str = "2.0.0"


class EventBusSettings(BaseModel):
    """Event bus settings."""

    max_listeners: int = Field(default=50, ge=0, description="Per-kind listener ceiling (0 disables the warning)")
    # None = follow the environment (on in development)
    debug: bool | None = None


class TerminalSettings(BaseModel):
    """Terminal surface settings."""

    colors: bool = True
    unicode: bool = True
    grab_input: bool = True


class LoggingSettings(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    dir: str = "logs"
    # The rich terminal owns stdout while running; console logs would tear the screen.
    console_enabled: bool = False
    file_enabled: bool = True
    json_enabled: bool = False
    json_file: str = "logs/dtrader_json.jsonl"
    # Rotate JSONL log to prevent unbounded growth.
    # Set to 0 to disable rotation.
    json_max_bytes: int = 20_000_000
    json_backup_count: int = 14
    mask_sensitive: bool = True


class ShutdownSettings(BaseModel):
    """Shutdown behavior settings."""

    grace_delay_seconds: float = Field(
        default=0.08,
        ge=0.0,
        le=0.1,
        description="Delay between the shutdown sequence and process exit, lets buffered output flush",
    )


class CredentialsSettings(BaseModel):
    """Exchange credentials checked at startup."""

    api_key: str = ""
    secret_key: str = ""
    required: bool = True

    def validate_for_startup(self) -> list[str]:
        """
        Validate that required credentials are present.

        Returns a list of validation errors. Empty list means validation passed.
        """
        if not self.required:
            return []

        errors = []
        if not self.api_key:
            errors.append("credentials.api_key is required (GATE_API_KEY)")
        if not self.secret_key:
            errors.append("credentials.secret_key is required (GATE_SECRET_KEY)")
        return errors


class Settings(BaseSettings):
    """
    Main settings container.

    Loads from YAML, then applies env var overrides.
    """

    environment: Environment = Environment.DEVELOPMENT

    # Sub-settings
    app: AppSettings = Field(default_factory=AppSettings)
    event_bus: EventBusSettings = Field(default_factory=EventBusSettings)
    terminal: TerminalSettings = Field(default_factory=TerminalSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    shutdown: ShutdownSettings = Field(default_factory=ShutdownSettings)
    credentials: CredentialsSettings = Field(default_factory=CredentialsSettings)

    model_config = {
        "env_prefix": "DTRADER_",
        "env_nested_delimiter": "__",
        "extra": "ignore",
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # DTRADER_* variables win over values coming from YAML
        return env_settings, init_settings, file_secret_settings

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def bus_debug_enabled(self) -> bool:
        if self.event_bus.debug is None:
            return self.is_development
        return self.event_bus.debug

    def validate_for_startup(self) -> list[str]:
        """
        Validate that all required settings are present before the console starts.

        Returns:
            List of validation error messages. Empty list means all validations passed.
        """
        errors = []
        errors.extend(self.credentials.validate_for_startup())

        if not self.logging.dir:
            errors.append("logging.dir must not be empty")

        level = self.logging.level.upper()
        if not isinstance(logging.getLevelName(level), int):
            errors.append(f"logging.level is not a valid level: {self.logging.level!r}")

        return errors

    def redacted(self) -> dict[str, Any]:
        """Settings as a plain dict with secrets masked (safe to publish or log)."""
        data = self.model_dump(mode="json")
        creds = data.get("credentials", {})
        for key in ("api_key", "secret_key"):
            if creds.get(key):
                creds[key] = MASK
        return data

    @classmethod
    def from_yaml(cls, env: str = "development", config_file: Path | None = None) -> Settings:
        """
        Load settings from config.yaml.

        The 'env' parameter sets `settings.environment` (banners, debug defaults).
        """
        yaml_file = config_file or Path(__file__).parent / "config.yaml"

        data: dict = {}
        if yaml_file.exists():
            with open(yaml_file, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif config_file is not None:
            raise FileNotFoundError(f"Config file not found: {config_file}")

        data = _apply_legacy_env(data)
        data["environment"] = Environment.from_string(env).value

        # Warn about unknown keys before creating model (helps catch typos in config.yaml)
        _warn_unknown_keys(data, cls)

        return cls(**data)


def _apply_legacy_env(data: dict) -> dict:
    """Map the historical (un-prefixed) environment variable names onto settings keys."""
    data = _deep_merge({}, data)

    for section in ("logging", "terminal", "event_bus", "credentials"):
        if not isinstance(data.get(section), dict):
            data[section] = {}

    if os.getenv("LOG_LEVEL"):
        data["logging"]["level"] = os.getenv("LOG_LEVEL")
    if os.getenv("LOG_DIR"):
        data["logging"]["dir"] = os.getenv("LOG_DIR")
    if os.getenv("LOG_FILE"):
        data["logging"]["file_enabled"] = _env_flag("LOG_FILE")
    if os.getenv("LOG_MASK_SENSITIVE"):
        data["logging"]["mask_sensitive"] = _env_flag("LOG_MASK_SENSITIVE")

    if os.getenv("TERMINAL_COLORS"):
        data["terminal"]["colors"] = _env_flag("TERMINAL_COLORS")
    if os.getenv("TERMINAL_UNICODE"):
        data["terminal"]["unicode"] = _env_flag("TERMINAL_UNICODE")

    if os.getenv("EVENT_BUS_MAX_LISTENERS"):
        data["event_bus"]["max_listeners"] = int(os.getenv("EVENT_BUS_MAX_LISTENERS").strip())

    if os.getenv("GATE_API_KEY"):
        data["credentials"]["api_key"] = os.getenv("GATE_API_KEY")
    if os.getenv("GATE_SECRET_KEY"):
        data["credentials"]["secret_key"] = os.getenv("GATE_SECRET_KEY")

    return data


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() not in ("false", "0", "no", "off")


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dicts, override wins on conflicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        elif isinstance(value, dict):
            result[key] = _deep_merge({}, value)
        else:
            result[key] = value
    return result


def _collect_all_keys(data: dict, prefix: str = "") -> set[str]:
    """
    Recursively collect all keys from a nested dict.

    Returns keys in dot-notation format (e.g., "logging.json_enabled").
    """
    keys = set()
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        keys.add(full_key)
        if isinstance(value, dict):
            keys.update(_collect_all_keys(value, full_key))
    return keys


def _collect_model_fields(model_class: type[BaseModel], prefix: str = "") -> set[str]:
    """
    Recursively collect all field names from a Pydantic model.

    Returns field names in dot-notation format.
    """
    fields = set()
    for field_name, field_info in model_class.model_fields.items():
        full_key = f"{prefix}.{field_name}" if prefix else field_name
        fields.add(full_key)

        annotation = field_info.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            fields.update(_collect_model_fields(annotation, full_key))

    return fields


def _warn_unknown_keys(data: dict, model_class: type[BaseModel]) -> None:
    """
    Warn about unknown keys in YAML config that don't match model fields.

    This prevents silent config bugs where typos in key names are ignored.
    """
    yaml_keys = _collect_all_keys(data)
    model_fields = _collect_model_fields(model_class)

    unknown_keys = yaml_keys - model_fields

    if unknown_keys:
        logger.warning(
            f"Unknown configuration keys found (will be ignored due to extra='ignore'): {sorted(unknown_keys)}. "
            f"This may indicate typos in config.yaml or outdated config keys."
        )


@lru_cache(maxsize=4)
def get_settings(env: str | None = None) -> Settings:
    """Get cached settings instance."""
    resolved_env = env or os.getenv("DTRADER_ENV") or os.getenv("NODE_ENV") or "development"
    return Settings.from_yaml(env=resolved_env)

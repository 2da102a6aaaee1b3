"""
Unit tests for Settings loading (offline-only).

YAML defaults, environment overrides, legacy variable names and the startup
validation guard.
"""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from dtrader.config.settings import MASK, Settings, get_settings
from dtrader.domain.models import Environment

pytestmark = pytest.mark.unit


class TestYamlDefaults:
    def test_bundled_yaml_loads(self):
        settings = Settings.from_yaml(env="development")

        assert settings.environment is Environment.DEVELOPMENT
        assert settings.app.name == "dtrader-crypto 2.0"
        assert settings.app.version == "2.0.0"
        assert settings.event_bus.max_listeners == 50
        assert settings.shutdown.grace_delay_seconds == pytest.approx(0.08)
        assert settings.logging.console_enabled is False

    def test_env_name_sets_environment(self):
        assert Settings.from_yaml(env="prod").environment is Environment.PRODUCTION

    def test_custom_file(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("event_bus:\n  max_listeners: 7\nterminal:\n  unicode: false\n")

        settings = Settings.from_yaml(config_file=config_file)

        assert settings.event_bus.max_listeners == 7
        assert settings.terminal.unicode is False
        # Untouched sections keep model defaults
        assert settings.terminal.colors is True

    def test_missing_explicit_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml(config_file=tmp_path / "nope.yaml")

    def test_unknown_keys_warn(self, tmp_path, caplog):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("logging:\n  levle: DEBUG\n")

        with caplog.at_level(logging.WARNING, logger="dtrader.config.settings"):
            Settings.from_yaml(config_file=config_file)

        assert "logging.levle" in caplog.text

    def test_invalid_grace_delay_rejected(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("shutdown:\n  grace_delay_seconds: 2\n")

        with pytest.raises(ValidationError):
            Settings.from_yaml(config_file=config_file)


class TestEnvironmentOverrides:
    def test_prefixed_variable_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("DTRADER_LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("DTRADER_EVENT_BUS__MAX_LISTENERS", "12")

        settings = Settings.from_yaml()

        assert settings.logging.level == "DEBUG"
        assert settings.event_bus.max_listeners == 12
        # Siblings from YAML survive the nested override
        assert settings.logging.dir == "logs"

    def test_legacy_variables(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        monkeypatch.setenv("LOG_FILE", "false")
        monkeypatch.setenv("TERMINAL_COLORS", "0")
        monkeypatch.setenv("EVENT_BUS_MAX_LISTENERS", "3")
        monkeypatch.setenv("GATE_API_KEY", "api")
        monkeypatch.setenv("GATE_SECRET_KEY", "secret")

        settings = Settings.from_yaml()

        assert settings.logging.level == "WARNING"
        assert settings.logging.file_enabled is False
        assert settings.terminal.colors is False
        assert settings.event_bus.max_listeners == 3
        assert settings.credentials.api_key == "api"
        assert settings.credentials.secret_key == "secret"

    def test_get_settings_reads_env_name(self, monkeypatch):
        monkeypatch.setenv("NODE_ENV", "production")

        assert get_settings().environment is Environment.PRODUCTION

    def test_get_settings_is_cached(self):
        assert get_settings("development") is get_settings("development")


class TestStartupValidation:
    def test_missing_credentials_reported(self):
        settings = Settings()

        errors = settings.validate_for_startup()

        assert any("api_key" in e for e in errors)
        assert any("secret_key" in e for e in errors)

    def test_credentials_not_required(self):
        settings = Settings(credentials={"required": False})

        assert settings.validate_for_startup() == []

    def test_invalid_log_level_reported(self):
        settings = Settings(credentials={"required": False}, logging={"level": "LOUD"})

        errors = settings.validate_for_startup()

        assert len(errors) == 1
        assert "logging.level" in errors[0]


class TestDerivedValues:
    def test_bus_debug_follows_environment(self):
        assert Settings(environment=Environment.DEVELOPMENT).bus_debug_enabled is True
        assert Settings(environment=Environment.PRODUCTION).bus_debug_enabled is False

    def test_bus_debug_explicit(self):
        settings = Settings(environment=Environment.DEVELOPMENT, event_bus={"debug": False})
        assert settings.bus_debug_enabled is False

    def test_redacted_masks_secrets(self):
        settings = Settings(credentials={"api_key": "real-key", "secret_key": "real-secret"})

        data = settings.redacted()

        assert data["credentials"]["api_key"] == MASK
        assert data["credentials"]["secret_key"] == MASK
        assert data["environment"] == "development"
        assert "real-key" not in str(data)

    def test_redacted_keeps_empty_secrets_empty(self):
        assert Settings().redacted()["credentials"]["api_key"] == ""

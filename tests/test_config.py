"""
Tests for blog_scheduler.config.

Covers:
    - Settings defaults and value validation
    - Settings.from_yaml(): nested sections, missing file, bad YAML
    - Environment variable overrides
    - get_settings() / reset_settings() singleton
    - validate_env()
"""

from pathlib import Path

import pytest

from blog_scheduler.config import (
    PROJECT_ROOT,
    REQUIRED_ENV_VARS,
    Settings,
    get_settings,
    reset_settings,
    validate_env,
)
from blog_scheduler.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


def _write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


# ===========================================================================
# Defaults and validation
# ===========================================================================


class TestSettingsDefaults:

    def test_defaults(self):
        settings = Settings()

        assert settings.display_timezone == "Asia/Kolkata"
        assert settings.check_interval_seconds == 60.0
        assert settings.retry_attempts == 3
        assert settings.retry_delay_seconds == 3.0
        assert settings.store_timeout_seconds == 30.0
        assert settings.run_diagnostics is True
        assert settings.log_level == "INFO"
        assert settings.log_dir == "logs"

    @pytest.mark.parametrize(
        "kwargs,fragment",
        [
            ({"check_interval_seconds": 0}, "check_interval_seconds"),
            ({"retry_attempts": 0}, "retry_attempts"),
            ({"retry_delay_seconds": -1}, "retry_delay_seconds"),
            ({"store_timeout_seconds": 0}, "store_timeout_seconds"),
            ({"log_level": "LOUD"}, "log_level"),
            ({"display_timezone": "Nowhere/Special"}, "Unknown time zone"),
        ],
    )
    def test_invalid_values_rejected(self, kwargs, fragment):
        with pytest.raises(ConfigurationError, match=fragment):
            Settings(**kwargs)

    def test_zero_retry_delay_allowed(self):
        assert Settings(retry_delay_seconds=0).retry_delay_seconds == 0


# ===========================================================================
# YAML loading
# ===========================================================================


class TestFromYaml:

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = Settings.from_yaml(tmp_path / "absent.yaml")
        assert settings == Settings()

    def test_nested_sections(self, tmp_path):
        path = _write_yaml(
            tmp_path,
            "scheduler:\n"
            "  display_timezone: UTC\n"
            "  check_interval_seconds: 15\n"
            "  retry_attempts: 5\n"
            "  run_diagnostics: false\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  dir: /var/log/blog\n",
        )

        settings = Settings.from_yaml(path)

        assert settings.display_timezone == "UTC"
        assert settings.check_interval_seconds == 15
        assert settings.retry_attempts == 5
        assert settings.run_diagnostics is False
        assert settings.log_level == "DEBUG"
        assert settings.log_dir == "/var/log/blog"
        # Untouched fields keep defaults
        assert settings.retry_delay_seconds == 3.0

    def test_flat_keys_and_unknown_keys(self, tmp_path):
        path = _write_yaml(tmp_path, "retry_delay_seconds: 1.5\nsomething_else: 7\n")

        settings = Settings.from_yaml(path)

        assert settings.retry_delay_seconds == 1.5

    def test_empty_file(self, tmp_path):
        assert Settings.from_yaml(_write_yaml(tmp_path, "")) == Settings()

    def test_malformed_yaml(self, tmp_path):
        path = _write_yaml(tmp_path, "scheduler: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            Settings.from_yaml(path)

    def test_non_mapping_yaml(self, tmp_path):
        path = _write_yaml(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigurationError, match="must be a mapping"):
            Settings.from_yaml(path)

    def test_invalid_yaml_value(self, tmp_path):
        path = _write_yaml(tmp_path, "scheduler:\n  retry_attempts: 0\n")
        with pytest.raises(ConfigurationError):
            Settings.from_yaml(path)

    def test_shipped_settings_file_loads(self):
        settings = Settings.from_yaml(PROJECT_ROOT / "config" / "settings.yaml")

        assert settings.display_timezone == "Asia/Kolkata"
        assert settings.check_interval_seconds == 60


# ===========================================================================
# Environment overrides
# ===========================================================================


class TestEnvOverrides:

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path, "scheduler:\n  check_interval_seconds: 15\n")
        monkeypatch.setenv("SCHEDULER_INTERVAL_SECONDS", "120")
        monkeypatch.setenv("SCHEDULER_RETRY_ATTEMPTS", "4")
        monkeypatch.setenv("SCHEDULER_RUN_DIAGNOSTICS", "off")
        monkeypatch.setenv("SCHEDULER_DISPLAY_TIMEZONE", "Europe/London")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        settings = Settings.from_yaml(path)

        assert settings.check_interval_seconds == 120.0
        assert settings.retry_attempts == 4
        assert settings.run_diagnostics is False
        assert settings.display_timezone == "Europe/London"
        assert settings.log_level == "warning"

    @pytest.mark.parametrize(
        "key,value",
        [
            ("SCHEDULER_RETRY_ATTEMPTS", "three"),
            ("SCHEDULER_INTERVAL_SECONDS", "soon"),
            ("SCHEDULER_RUN_DIAGNOSTICS", "sometimes"),
        ],
    )
    def test_unparseable_env_value(self, tmp_path, monkeypatch, key, value):
        monkeypatch.setenv(key, value)
        with pytest.raises(ConfigurationError, match=key):
            Settings.from_yaml(tmp_path / "absent.yaml")


# ===========================================================================
# Singleton
# ===========================================================================


def test_get_settings_is_cached():
    first = get_settings()
    assert get_settings() is first

    reset_settings()
    assert get_settings() is not first


# ===========================================================================
# validate_env()
# ===========================================================================


class TestValidateEnv:

    def test_missing_vars_strict(self):
        with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
            validate_env(strict=True)

    def test_missing_vars_lenient(self):
        status = validate_env(strict=False)
        assert status == {var: False for var in REQUIRED_ENV_VARS}

    def test_all_present(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-key")

        assert validate_env(strict=True) == {
            "SUPABASE_URL": True,
            "SUPABASE_SERVICE_KEY": True,
        }

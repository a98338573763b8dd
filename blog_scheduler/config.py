"""
Centralized configuration loader for the scheduled-publishing service.

Loads settings from YAML files and environment variables, providing
sensible defaults when configuration files are absent.

Provides:
    - Settings: Global application settings loaded from YAML + env vars
    - get_settings(): Singleton accessor for Settings
    - reset_settings(): Clear the cached Settings (tests, reloads)
    - validate_env(): Startup validation of required environment variables
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from blog_scheduler.exceptions import ConfigurationError
from blog_scheduler.timezones import DEFAULT_DISPLAY_TIMEZONE, get_zone

# ---------------------------------------------------------------------------
# Load .env file (no-op if file does not exist)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# Project root directory (parent of blog_scheduler/)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def _parse_bool(value: str) -> bool:
    text = value.strip().lower()
    if text in {"1", "true", "yes", "on"}:
        return True
    if text in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"not a boolean: {value!r}")


# Env var -> (settings field, caster)
ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "SCHEDULER_DISPLAY_TIMEZONE": ("display_timezone", str),
    "SCHEDULER_INTERVAL_SECONDS": ("check_interval_seconds", float),
    "SCHEDULER_RETRY_ATTEMPTS": ("retry_attempts", int),
    "SCHEDULER_RETRY_DELAY_SECONDS": ("retry_delay_seconds", float),
    "SCHEDULER_STORE_TIMEOUT_SECONDS": ("store_timeout_seconds", float),
    "SCHEDULER_RUN_DIAGNOSTICS": ("run_diagnostics", _parse_bool),
    "LOG_LEVEL": ("log_level", str),
    "LOG_DIR": ("log_dir", str),
}


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================


@dataclass
class Settings:
    """
    Global application settings.

    Loaded from ``config/settings.yaml`` when available, falling back to
    sensible defaults. Environment variables override YAML values.
    """

    # Timezone used for display and log formatting (storage is always UTC)
    display_timezone: str = DEFAULT_DISPLAY_TIMEZONE

    # Polling driver
    check_interval_seconds: float = 60.0
    retry_attempts: int = 3
    retry_delay_seconds: float = 3.0

    # Evaluator
    store_timeout_seconds: float = 30.0
    run_diagnostics: bool = True

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    def __post_init__(self) -> None:
        """Validate value ranges (fail-fast on bad config)."""
        get_zone(self.display_timezone)
        if self.check_interval_seconds <= 0:
            raise ConfigurationError(
                f"check_interval_seconds must be positive, got {self.check_interval_seconds}"
            )
        if self.retry_attempts < 1:
            raise ConfigurationError(
                f"retry_attempts must be at least 1, got {self.retry_attempts}"
            )
        if self.retry_delay_seconds < 0:
            raise ConfigurationError(
                f"retry_delay_seconds cannot be negative, got {self.retry_delay_seconds}"
            )
        if self.store_timeout_seconds <= 0:
            raise ConfigurationError(
                f"store_timeout_seconds must be positive, got {self.store_timeout_seconds}"
            )
        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL,
        ):
            raise ConfigurationError(f"Unknown log_level '{self.log_level}'")

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        If the file does not exist, returns an instance with all defaults.
        Environment variables override YAML values.

        Args:
            path: Path to the YAML file. Defaults to
                ``<PROJECT_ROOT>/config/settings.yaml``.

        Returns:
            Populated Settings instance.

        Raises:
            ConfigurationError: If the YAML file exists but cannot be parsed,
                or a value is invalid.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc

        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings YAML at {path} must be a mapping")

        # The scheduler section may be nested or flat
        scheduler_data = data.get("scheduler", {}) or {}
        logging_data = data.get("logging", {}) or {}
        merged: Dict[str, Any] = {**data, **scheduler_data}
        if "level" in logging_data:
            merged["log_level"] = logging_data["level"]
        if "dir" in logging_data:
            merged["log_dir"] = logging_data["dir"]

        kwargs: Dict[str, Any] = {
            name: merged[name]
            for name in cls.__dataclass_fields__
            if name in merged
        }

        # -----------------------------------------------------------------
        # Environment variable overrides
        # -----------------------------------------------------------------
        for env_key, (attr_name, cast_fn) in ENV_OVERRIDES.items():
            env_val = os.environ.get(env_key)
            if env_val is not None:
                try:
                    kwargs[attr_name] = cast_fn(env_val)
                except (ValueError, TypeError) as exc:
                    raise ConfigurationError(
                        f"Invalid value for env var {env_key}='{env_val}': {exc}"
                    ) from exc

        return cls(**kwargs)


# ===========================================================================
# SINGLETON SETTINGS ACCESSOR
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings singleton.

    On first call, loads from ``config/settings.yaml`` (or defaults).
    Subsequent calls return the cached instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Reset the cached Settings singleton."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ===========================================================================

REQUIRED_ENV_VARS: List[str] = [
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
]


def validate_env(strict: bool = True) -> Dict[str, bool]:
    """
    Validate that required environment variables are set.

    Args:
        strict: If ``True``, raise ``ConfigurationError`` when any required
            variable is missing. If ``False``, return the status dict
            without raising.

    Returns:
        Dict mapping variable name to presence status (``True`` if set).

    Raises:
        ConfigurationError: If ``strict=True`` and required vars are missing.
    """
    status: Dict[str, bool] = {}
    missing: List[str] = []

    for var in REQUIRED_ENV_VARS:
        present = bool(os.environ.get(var))
        status[var] = present
        if not present:
            missing.append(var)

    if strict and missing:
        raise ConfigurationError(
            f"Missing required environment variables: {missing}. "
            f"Copy .env.example to .env and fill in the values."
        )

    return status


__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "validate_env",
    "REQUIRED_ENV_VARS",
]

"""Configuration loading for the student records service.

Values come from an optional YAML file, then environment variables named
``STUDENT_RECORDS_<FIELD>`` (for example ``STUDENT_RECORDS_DATABASE_URL``)
override whatever the file set.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE_NAME = "student_records.yaml"
ENV_PREFIX = "STUDENT_RECORDS_"
ENVIRONMENTS = ("development", "production")


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass
class AppConfig:
    """Application configuration."""

    environment: str = "development"
    database_url: str = "student_records.db"
    host: str = "127.0.0.1"
    port: int = 3000
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    static_dir: str | None = "dist"
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 15 * 60
    log_dir: str = "logs"
    log_level: str = "INFO"

    @property
    def debug(self) -> bool:
        """Whether error responses may carry exception details."""
        return self.environment != "production"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AppConfig:
        """Create config from dictionary.

        Args:
            data: Configuration values keyed by field name.

        Returns:
            Parsed configuration object.

        Raises:
            ConfigError: If a key is unknown or a value has the wrong type.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, raw in data.items():
            values[name] = _coerce(name, known[name].type, raw)

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        """Check cross-field rules.

        Raises:
            ConfigError: If any value is out of range.
        """
        if self.environment not in ENVIRONMENTS:
            raise ConfigError(
                f"environment must be one of {', '.join(ENVIRONMENTS)}, got '{self.environment}'"
            )
        if not 0 < self.port < 65536:
            raise ConfigError(f"port must be between 1 and 65535, got {self.port}")
        if self.rate_limit_requests < 0 or self.rate_limit_window_seconds < 1:
            raise ConfigError("rate limit values must be non-negative with a positive window")
        if not self.api_prefix.startswith("/"):
            raise ConfigError(f"api_prefix must start with '/', got '{self.api_prefix}'")


def _coerce(name: str, type_name: Any, raw: Any) -> Any:
    """Convert a raw file or environment value to the field's type."""
    type_name = str(type_name)
    if raw is None:
        if "None" in type_name:
            return None
        raise ConfigError(f"{name} cannot be empty")
    if type_name == "int":
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if type_name.startswith("list"):
        if isinstance(raw, str):
            return [item.strip() for item in raw.split(",") if item.strip()]
        if isinstance(raw, list):
            return [str(item) for item in raw]
        raise ConfigError(f"{name} must be a list, got {raw!r}")
    return str(raw)


def find_config(start_path: Path | None = None) -> Path | None:
    """Find the config file in the given directory, if there is one."""
    directory = start_path or Path.cwd()
    candidate = directory / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def load_config(
    config_path: Path | None = None, environ: dict[str, str] | None = None
) -> AppConfig:
    """Load configuration from a YAML file and the environment.

    Args:
        config_path: Explicit YAML file. When None, the working directory is
                     searched and defaults are used if nothing is found.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        The loaded configuration.

    Raises:
        ConfigError: If the file is unreadable or any value is invalid.
    """
    data: dict[str, Any] = {}

    path = config_path or find_config()
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read config file {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        data.update(loaded)

    env = os.environ if environ is None else environ
    for f in fields(AppConfig):
        key = f"{ENV_PREFIX}{f.name.upper()}"
        if key in env:
            data[f.name] = env[key]

    return AppConfig.from_dict(data)

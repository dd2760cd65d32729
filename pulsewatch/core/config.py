"""Pydantic settings loaded from YAML configuration and the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, SecretStr

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

# Environment variable → path into the settings tree.
_ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "REDIS_URL": ("worker", "queue_url"),
    "SMTP_HOST": ("notifications", "smtp", "host"),
    "SMTP_PORT": ("notifications", "smtp", "port"),
    "SMTP_USER": ("notifications", "smtp", "user"),
    "SMTP_PASS": ("notifications", "smtp", "password"),
    "SMTP_FROM": ("notifications", "smtp", "from_address"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
}


class ProbeConfig(BaseModel):
    """HTTP health probe configuration."""

    timeout_secs: float = 10.0
    max_redirects: int = 5
    user_agent: str = "Monitor-Service/1.0"


class SmtpConfig(BaseModel):
    """Outbound mail transport configuration."""

    host: str = ""
    port: int = 587
    user: str = ""
    password: SecretStr = SecretStr("")
    from_address: str = ""
    timeout_secs: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.host)

    @property
    def use_ssl(self) -> bool:
        """Implicit TLS on 465, STARTTLS everywhere else."""
        return self.port == 465


class NotificationConfig(BaseModel):
    """Notification fan-out configuration."""

    delivery_timeout_secs: float = 10.0
    user_agent: str = "Monitor-Alert-Service/1.0"
    footer: str = "Monitor Alert"
    smtp: SmtpConfig = SmtpConfig()


class WorkerConfig(BaseModel):
    """Check-job consumer configuration."""

    queue_name: str = "monitor-checks"
    queue_url: SecretStr = SecretStr("")
    concurrency: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    probe: ProbeConfig = ProbeConfig()
    notifications: NotificationConfig = NotificationConfig()
    worker: WorkerConfig = WorkerConfig()
    logging: LoggingConfig = LoggingConfig()


def _apply_env_overrides(data: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    """Overlay environment variables onto raw YAML data (env wins)."""
    for var, path in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if value is None or value == "":
            continue
        node = data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[path[-1]] = value
    return data


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from a YAML file plus environment overrides and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.
        environ: Environment mapping. Defaults to ``os.environ``.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    env = dict(os.environ) if environ is None else environ
    _settings = Settings(**_apply_env_overrides(data, env))
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None

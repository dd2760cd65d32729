"""Core module — config, types, logging, exceptions."""

from pulsewatch.core.config import Settings, get_settings, load_settings, reset_settings
from pulsewatch.core.logging import setup_logging
from pulsewatch.core.types import (
    AlertKind,
    AlertMessage,
    ChannelType,
    CheckResult,
    CheckStatus,
    DeliveryResult,
    ErrorType,
    Incident,
    IncidentStatus,
    Monitor,
    MonitorStatus,
    NotificationChannel,
    Priority,
)

__all__ = [
    "AlertKind",
    "AlertMessage",
    "ChannelType",
    "CheckResult",
    "CheckStatus",
    "DeliveryResult",
    "ErrorType",
    "Incident",
    "IncidentStatus",
    "Monitor",
    "MonitorStatus",
    "NotificationChannel",
    "Priority",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "setup_logging",
]

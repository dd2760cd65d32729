"""Domain types shared by the probe, incident, notification and worker layers."""

from __future__ import annotations

import datetime
import uuid
from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, Field


def utcnow() -> datetime.datetime:
    """Timezone-aware current UTC time."""
    return datetime.datetime.now(datetime.UTC)


def _new_id() -> str:
    return str(uuid.uuid4())


class MonitorStatus(StrEnum):
    """Last known status of a monitor."""

    UP = "up"
    DOWN = "down"
    PAUSED = "paused"
    UNKNOWN = "unknown"


class CheckStatus(StrEnum):
    """Outcome of a single probe as persisted in a check result."""

    UP = "up"
    DOWN = "down"


class ErrorType(StrEnum):
    """Classification of a failed probe."""

    TIMEOUT = "timeout"
    NETWORK = "network"
    STATUS = "status"
    UNKNOWN = "unknown"


class IncidentStatus(StrEnum):
    OPEN = "open"
    RESOLVED = "resolved"


class ChannelType(StrEnum):
    """Notification channel kinds a user can configure."""

    EMAIL = "email"
    SLACK = "slack"
    DISCORD = "discord"
    WEBHOOK = "webhook"


# Unknown stored types stay plain strings; the dispatcher rejects such a channel
# on its own.
ChannelTypeTag = Annotated[ChannelType | str, Field(union_mode="left_to_right")]


class Priority(StrEnum):
    """Alert priority — drives emoji, colour and ordering in channel payloads."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertKind(StrEnum):
    """Incident lifecycle events that have a rendered message.

    Only NEW_INCIDENT and RESOLVED are ever emitted by the state machine;
    ONGOING has a renderer but no caller.
    """

    NEW_INCIDENT = "new_incident"
    ONGOING = "ongoing"
    RESOLVED = "resolved"


# ── Persistent records ───────────────────────────────────────────


class Monitor(BaseModel):
    """A configured HTTP target checked periodically."""

    id: str
    user_id: str
    url: str
    name: str = ""
    method: str = "GET"
    expected_status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    status: MonitorStatus = MonitorStatus.UNKNOWN

    @property
    def display_name(self) -> str:
        return self.name or self.url


class CheckResult(BaseModel):
    """One probe outcome. Append-only."""

    id: str = Field(default_factory=_new_id)
    monitor_id: str
    status: CheckStatus
    response_ms: int
    created_at: datetime.datetime = Field(default_factory=utcnow)


class Incident(BaseModel):
    """A span of downtime for a monitor.

    ``end_at`` is None exactly while the incident is open.
    """

    id: str = Field(default_factory=_new_id)
    monitor_id: str
    user_id: str
    status: IncidentStatus = IncidentStatus.OPEN
    start_at: datetime.datetime
    end_at: datetime.datetime | None = None
    duration_ms: int = 0
    error_message: str | None = None

    @property
    def is_open(self) -> bool:
        return self.end_at is None


class NotificationChannel(BaseModel):
    """A user-configured delivery endpoint (address, webhook URL...)."""

    id: str = Field(default_factory=_new_id)
    user_id: str
    type: ChannelTypeTag
    value: str


# ── Alert delivery ───────────────────────────────────────────────


class AlertMessage(BaseModel):
    """Rendered alert ready for delivery to channels."""

    title: str
    message: str
    priority: Priority = Priority.MEDIUM
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime.datetime = Field(default_factory=utcnow)


class DeliveryResult(BaseModel):
    """Outcome of delivering one alert to one channel."""

    channel_id: str
    type: ChannelTypeTag
    success: bool
    error: str | None = None
    status_code: int | None = None

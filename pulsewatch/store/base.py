"""Persistence gateway consumed by the check worker and notification dispatcher."""

from __future__ import annotations

import abc

from pulsewatch.core.types import (
    CheckResult,
    CheckStatus,
    Incident,
    Monitor,
    MonitorStatus,
    NotificationChannel,
)
from pulsewatch.incidents.state_machine import IncidentCreate, IncidentUpdate


class ChannelSource(abc.ABC):
    """Read access to a user's notification channels."""

    @abc.abstractmethod
    async def list_channels(self, user_id: str) -> list[NotificationChannel]:
        """Return every channel configured by *user_id* (possibly empty).

        A row whose type is not a known ``ChannelType`` is still returned, with
        ``type`` as the raw string, so the dispatcher can fail that channel alone.
        """


class Store(ChannelSource):
    """Everything a check job reads and writes.

    Implementations must tolerate concurrent writes to the same monitor row.
    Errors propagate to the caller; retries are the job queue's concern.
    """

    @abc.abstractmethod
    async def get_monitor(self, monitor_id: str) -> Monitor | None:
        """Return the monitor, or None if it no longer exists."""

    @abc.abstractmethod
    async def set_monitor_status(self, monitor_id: str, status: MonitorStatus) -> None:
        """Overwrite the monitor's status."""

    @abc.abstractmethod
    async def append_check_result(
        self, monitor_id: str, status: CheckStatus, response_ms: int
    ) -> CheckResult:
        """Append one check result row."""

    @abc.abstractmethod
    async def find_open_incident(self, monitor_id: str) -> Incident | None:
        """Return the monitor's incident with ``end_at`` unset, if any."""

    @abc.abstractmethod
    async def create_incident(self, fields: IncidentCreate) -> Incident:
        """Insert a new open incident and return it."""

    @abc.abstractmethod
    async def update_incident(self, incident_id: str, fields: IncidentUpdate) -> Incident:
        """Apply *fields* to an existing incident and return the updated row."""

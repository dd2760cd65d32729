"""In-memory Store — for tests, local runs and embedding without a database."""

from __future__ import annotations

from pulsewatch.core.exceptions import IncidentConflictError, StoreError
from pulsewatch.core.types import (
    CheckResult,
    CheckStatus,
    Incident,
    Monitor,
    MonitorStatus,
    NotificationChannel,
)
from pulsewatch.incidents.state_machine import IncidentCreate, IncidentUpdate
from pulsewatch.store.base import Store


class InMemoryStore(Store):
    """Dict-backed implementation of the persistence gateway.

    Enforces the single-open-incident invariant on insert, like a partial
    unique index on ``(monitor_id) WHERE end_at IS NULL`` would.
    """

    def __init__(
        self,
        monitors: list[Monitor] | None = None,
        channels: list[NotificationChannel] | None = None,
    ) -> None:
        self.monitors: dict[str, Monitor] = {m.id: m for m in monitors or []}
        self.channels: list[NotificationChannel] = list(channels or [])
        self.check_results: list[CheckResult] = []
        self.incidents: dict[str, Incident] = {}

    # ── Seeding helpers ─────────────────────────────────────────

    def add_monitor(self, monitor: Monitor) -> None:
        self.monitors[monitor.id] = monitor

    def remove_monitor(self, monitor_id: str) -> None:
        self.monitors.pop(monitor_id, None)

    def add_channel(self, channel: NotificationChannel) -> None:
        self.channels.append(channel)

    def incidents_for(self, monitor_id: str) -> list[Incident]:
        return [i for i in self.incidents.values() if i.monitor_id == monitor_id]

    def results_for(self, monitor_id: str) -> list[CheckResult]:
        return [r for r in self.check_results if r.monitor_id == monitor_id]

    # ── Store interface ─────────────────────────────────────────

    async def get_monitor(self, monitor_id: str) -> Monitor | None:
        return self.monitors.get(monitor_id)

    async def set_monitor_status(self, monitor_id: str, status: MonitorStatus) -> None:
        monitor = self.monitors.get(monitor_id)
        if monitor is None:
            raise StoreError(f"monitor {monitor_id} not found")
        self.monitors[monitor_id] = monitor.model_copy(update={"status": status})

    async def append_check_result(
        self, monitor_id: str, status: CheckStatus, response_ms: int
    ) -> CheckResult:
        row = CheckResult(monitor_id=monitor_id, status=status, response_ms=response_ms)
        self.check_results.append(row)
        return row

    async def find_open_incident(self, monitor_id: str) -> Incident | None:
        for incident in self.incidents.values():
            if incident.monitor_id == monitor_id and incident.is_open:
                return incident
        return None

    async def create_incident(self, fields: IncidentCreate) -> Incident:
        if await self.find_open_incident(fields.monitor_id) is not None:
            raise IncidentConflictError(
                f"monitor {fields.monitor_id} already has an open incident"
            )
        incident = Incident(**fields.model_dump())
        self.incidents[incident.id] = incident
        return incident

    async def update_incident(self, incident_id: str, fields: IncidentUpdate) -> Incident:
        incident = self.incidents.get(incident_id)
        if incident is None:
            raise StoreError(f"incident {incident_id} not found")
        updated = incident.model_copy(update=fields.changes())
        self.incidents[incident_id] = updated
        return updated

    async def list_channels(self, user_id: str) -> list[NotificationChannel]:
        return [c for c in self.channels if c.user_id == user_id]

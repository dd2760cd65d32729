"""Incident lifecycle as a pure transition function.

Given the monitor's currently open incident (or None) and the latest probe
result, ``step`` decides what to persist and which alert, if any, to emit:

=======  =====  ==============================  ============
Current  Probe  Mutation                        Event
=======  =====  ==============================  ============
None     down   create open incident            NEW_INCIDENT
Open     down   refresh duration + error        —
Open     up     set end_at, freeze duration     RESOLVED
None     up     —                               —
=======  =====  ==============================  ============

An ongoing outage is persisted silently; there is no re-notification.
"""

from __future__ import annotations

import datetime
from enum import StrEnum

from pydantic import BaseModel

from pulsewatch.core.types import AlertKind, Incident, IncidentStatus
from pulsewatch.probe.prober import ProbeResult


class IncidentState(StrEnum):
    NONE = "none"
    OPEN = "open"
    RESOLVED = "resolved"


def state_of(incident: Incident | None) -> IncidentState:
    if incident is None:
        return IncidentState.NONE
    if incident.is_open:
        return IncidentState.OPEN
    return IncidentState.RESOLVED


class IncidentCreate(BaseModel):
    """Fields for a newly opened incident."""

    monitor_id: str
    user_id: str
    start_at: datetime.datetime
    duration_ms: int = 0
    error_message: str
    status: IncidentStatus = IncidentStatus.OPEN


class IncidentUpdate(BaseModel):
    """Partial update to an existing incident. None fields are left untouched."""

    duration_ms: int
    error_message: str | None = None
    end_at: datetime.datetime | None = None
    status: IncidentStatus | None = None

    def changes(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class Transition(BaseModel):
    """Result of one state-machine step."""

    create: IncidentCreate | None = None
    incident_id: str | None = None
    update: IncidentUpdate | None = None
    event: AlertKind | None = None

    @property
    def is_noop(self) -> bool:
        return self.create is None and self.update is None


def incident_error_message(result: ProbeResult) -> str:
    """Error text stored on the incident row."""
    if result.error_message:
        return result.error_message
    return f"HTTP {result.status_code or 'Unknown'}"


def elapsed_ms(start: datetime.datetime, end: datetime.datetime) -> int:
    return int((end - start) / datetime.timedelta(milliseconds=1))


def step(
    open_incident: Incident | None,
    result: ProbeResult,
    *,
    monitor_id: str,
    user_id: str,
    now: datetime.datetime,
) -> Transition:
    """Advance the incident state machine by one probe result.

    Args:
        open_incident: The monitor's open incident, or None.
        result: Latest probe result.
        monitor_id: Owning monitor, used when opening an incident.
        user_id: Owning user, used when opening an incident.
        now: Transition time.

    Raises:
        ValueError: If *open_incident* is already resolved.
    """
    state = state_of(open_incident)
    if state is IncidentState.RESOLVED:
        raise ValueError(f"incident {open_incident.id} is not open")  # type: ignore[union-attr]

    if not result.is_up:
        if open_incident is None:
            return Transition(
                create=IncidentCreate(
                    monitor_id=monitor_id,
                    user_id=user_id,
                    start_at=now,
                    duration_ms=0,
                    error_message=incident_error_message(result),
                ),
                event=AlertKind.NEW_INCIDENT,
            )
        # Still down: never let the duration shrink if the clock steps back.
        duration = max(open_incident.duration_ms, elapsed_ms(open_incident.start_at, now))
        return Transition(
            incident_id=open_incident.id,
            update=IncidentUpdate(
                duration_ms=duration,
                error_message=incident_error_message(result),
            ),
        )

    if open_incident is None:
        return Transition()

    end_at = max(now, open_incident.start_at)
    return Transition(
        incident_id=open_incident.id,
        update=IncidentUpdate(
            duration_ms=elapsed_ms(open_incident.start_at, end_at),
            end_at=end_at,
            status=IncidentStatus.RESOLVED,
        ),
        event=AlertKind.RESOLVED,
    )

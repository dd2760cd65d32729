"""Incident lifecycle — open / ongoing / resolved transitions."""

from pulsewatch.incidents.state_machine import (
    IncidentCreate,
    IncidentState,
    IncidentUpdate,
    Transition,
    incident_error_message,
    state_of,
    step,
)

__all__ = [
    "IncidentCreate",
    "IncidentState",
    "IncidentUpdate",
    "Transition",
    "incident_error_message",
    "state_of",
    "step",
]

"""Exception hierarchy for pulsewatch."""

from __future__ import annotations


class PulsewatchError(Exception):
    """Base exception for all pulsewatch errors."""


# ── Notifications ────────────────────────────────────────────────


class NotificationError(PulsewatchError):
    """Base exception for notification delivery errors."""


class ChannelDeliveryError(NotificationError):
    """A channel rejected or failed to accept an alert."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChannelNotConfiguredError(NotificationError):
    """The transport a channel needs (e.g. SMTP) is not configured."""


class UnsupportedChannelError(NotificationError):
    """No sender is registered for the channel's type."""


# ── Persistence ──────────────────────────────────────────────────


class StoreError(PulsewatchError):
    """Base exception for persistence gateway errors."""


class IncidentConflictError(StoreError):
    """A second open incident would be created for the same monitor."""


# ── Worker ───────────────────────────────────────────────────────


class WorkerError(PulsewatchError):
    """Base exception for job consumer errors."""


class WorkerStoppedError(WorkerError):
    """The job queue has been closed and will yield no more jobs."""

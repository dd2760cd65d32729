"""Notification subsystem — alert rendering and multi-channel delivery."""

from pulsewatch.notify.channels import (
    ChannelSender,
    DiscordSender,
    EmailSender,
    SlackSender,
    WebhookSender,
)
from pulsewatch.notify.dispatcher import NotificationDispatcher
from pulsewatch.notify.factory import create_dispatcher, create_senders
from pulsewatch.notify.formatters import (
    IncidentAlert,
    format_incident_alert,
    format_new_incident,
    format_ongoing,
    format_resolved,
    troubleshooting_tips,
)

__all__ = [
    "ChannelSender",
    "DiscordSender",
    "EmailSender",
    "IncidentAlert",
    "NotificationDispatcher",
    "SlackSender",
    "WebhookSender",
    "create_dispatcher",
    "create_senders",
    "format_incident_alert",
    "format_new_incident",
    "format_ongoing",
    "format_resolved",
    "troubleshooting_tips",
]

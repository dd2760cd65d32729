"""Pure functions that render incident events into AlertMessage objects."""

from __future__ import annotations

import datetime

from pydantic import BaseModel

from pulsewatch.core.types import AlertKind, AlertMessage, ErrorType, Monitor, Priority
from pulsewatch.probe.prober import ProbeResult

_PRIORITY: dict[AlertKind, Priority] = {
    AlertKind.NEW_INCIDENT: Priority.CRITICAL,
    AlertKind.ONGOING: Priority.HIGH,
    AlertKind.RESOLVED: Priority.MEDIUM,
}

_TIPS_HEADER = "💡 Troubleshooting tips:"

_TROUBLESHOOTING_TIPS: dict[ErrorType, tuple[str, ...]] = {
    ErrorType.TIMEOUT: (
        "Check if your server is overloaded",
        "Verify network connectivity",
        "Consider increasing timeout if legitimate slow response",
    ),
    ErrorType.NETWORK: (
        "Verify the URL is correct and accessible",
        "Check DNS resolution",
        "Ensure firewall/security groups allow connections",
    ),
    ErrorType.STATUS: (
        "Check server logs for errors",
        "Verify the service is running properly",
        "Review recent deployments or changes",
    ),
}

_DEFAULT_TIP = "💡 We recommend checking your server logs and service status."


class IncidentAlert(BaseModel):
    """An incident lifecycle event to be rendered and fanned out."""

    kind: AlertKind
    monitor: Monitor
    result: ProbeResult
    incident_id: str | None = None
    downtime_ms: int | None = None
    occurred_at: datetime.datetime

    @property
    def user_id(self) -> str:
        return self.monitor.user_id


def priority_for(kind: AlertKind) -> Priority:
    return _PRIORITY[kind]


def troubleshooting_tips(error_type: ErrorType | None) -> str:
    """Fixed tip block per error type; anything unmapped gets the generic hint."""
    tips = _TROUBLESHOOTING_TIPS.get(error_type) if error_type is not None else None
    if tips is None:
        return _DEFAULT_TIP
    return "\n".join([_TIPS_HEADER, *(f"• {tip}" for tip in tips)])


def format_timestamp(ts: datetime.datetime) -> str:
    return ts.astimezone(datetime.UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def format_duration(ms: int) -> str:
    """Human-readable downtime, e.g. ``1h 2m 3s``."""
    seconds = max(ms, 0) // 1000
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_new_incident(alert: IncidentAlert) -> AlertMessage:
    service = alert.monitor.display_name
    result = alert.result
    message = "\n".join([
        "Your monitored service is currently experiencing issues.",
        "",
        f"🔗 Service: {service}",
        f"❌ Status: {result.error_message or 'Unknown error'}",
        f"⏱️ Response Time: {result.response_ms}ms",
        f"🕒 Started at: {format_timestamp(alert.occurred_at)}",
        "",
        troubleshooting_tips(result.error_type),
        "",
        "We'll continue monitoring and notify you when the service is restored.",
    ])
    return AlertMessage(
        title=f"🚨 Service Down: {service}",
        message=message,
        priority=priority_for(AlertKind.NEW_INCIDENT),
        metadata={
            "monitor_id": alert.monitor.id,
            "incident_id": alert.incident_id,
            "url": alert.monitor.url,
            "error_type": result.error_type.value if result.error_type else None,
        },
        timestamp=alert.occurred_at,
    )


def format_ongoing(alert: IncidentAlert) -> AlertMessage:
    """Still-down update. Rendered on request only; never emitted automatically."""
    service = alert.monitor.display_name
    result = alert.result
    message = "\n".join([
        "Your service continues to experience issues.",
        "",
        f"🔗 Service: {service}",
        f"❌ Current Status: {result.error_message or 'Unknown error'}",
        f"⏱️ Latest Check: {result.response_ms}ms",
        f"🕒 Last Checked: {format_timestamp(alert.occurred_at)}",
        "",
        "We're still monitoring the situation.",
    ])
    return AlertMessage(
        title=f"⚠️ Service Still Down: {service}",
        message=message,
        priority=priority_for(AlertKind.ONGOING),
        metadata={
            "monitor_id": alert.monitor.id,
            "incident_id": alert.incident_id,
            "url": alert.monitor.url,
        },
        timestamp=alert.occurred_at,
    )


def format_resolved(alert: IncidentAlert) -> AlertMessage:
    service = alert.monitor.display_name
    result = alert.result
    lines = [
        "Good news! Your monitored service is back online.",
        "",
        f"🔗 Service: {service}",
        f"⏱️ Response Time: {result.response_ms}ms",
        f"📊 Status: {result.status_code or 'N/A'}",
        f"🕒 Resolved at: {format_timestamp(alert.occurred_at)}",
    ]
    if alert.downtime_ms is not None:
        lines.append(f"⌛ Downtime: {format_duration(alert.downtime_ms)}")
    lines += ["", "Your service is now responding normally."]
    return AlertMessage(
        title=f"✅ Service Restored: {service}",
        message="\n".join(lines),
        priority=priority_for(AlertKind.RESOLVED),
        metadata={
            "monitor_id": alert.monitor.id,
            "incident_id": alert.incident_id,
            "url": alert.monitor.url,
            "downtime_ms": alert.downtime_ms,
        },
        timestamp=alert.occurred_at,
    )


_FORMATTERS = {
    AlertKind.NEW_INCIDENT: format_new_incident,
    AlertKind.ONGOING: format_ongoing,
    AlertKind.RESOLVED: format_resolved,
}


def format_incident_alert(alert: IncidentAlert) -> AlertMessage:
    """Render *alert* with the formatter for its kind."""
    return _FORMATTERS[alert.kind](alert)

"""Notification dispatcher — fans an alert out to every channel of a user."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from pulsewatch.core.exceptions import UnsupportedChannelError
from pulsewatch.core.types import (
    AlertMessage,
    ChannelType,
    DeliveryResult,
    NotificationChannel,
    Priority,
)
from pulsewatch.notify.channels import ChannelSender
from pulsewatch.notify.formatters import IncidentAlert, format_incident_alert
from pulsewatch.store.base import ChannelSource

# Dedicated structured logger for alert records.
decision_logger = structlog.get_logger("alert_decision")

logger = structlog.get_logger(__name__)


class NotificationDispatcher:
    """Delivers alerts to all of a user's configured channels.

    - Channels are looked up per call; none configured yields ``[]``.
    - Deliveries run concurrently, each bounded by its own timeout.
    - A failing channel is recorded in its own ``DeliveryResult`` and never
      affects its siblings. Only the channel lookup itself can raise.
    """

    def __init__(
        self,
        channels: ChannelSource,
        senders: dict[ChannelType, ChannelSender],
        delivery_timeout_secs: float = 10.0,
    ) -> None:
        self._channels = channels
        self._senders = senders
        self._delivery_timeout_secs = delivery_timeout_secs

    # ── Entry points ────────────────────────────────────────────

    async def dispatch(self, alert: IncidentAlert) -> list[DeliveryResult]:
        """Render an incident event and deliver it to the monitor owner."""
        msg = format_incident_alert(alert)
        return await self.send(alert.user_id, msg)

    async def notify_user(
        self,
        user_id: str,
        title: str,
        message: str,
        priority: Priority = Priority.MEDIUM,
        metadata: dict[str, Any] | None = None,
    ) -> list[DeliveryResult]:
        """Deliver an ad-hoc alert to every channel of *user_id*.

        Raises:
            ValueError: If user id, title or message is empty.
        """
        if not user_id or not title or not message:
            raise ValueError("user_id, title and message are required")
        msg = AlertMessage(
            title=title,
            message=message,
            priority=priority,
            metadata=metadata or {},
        )
        return await self.send(user_id, msg)

    async def send_critical(
        self, user_id: str, title: str, message: str, metadata: dict[str, Any] | None = None
    ) -> list[DeliveryResult]:
        return await self.notify_user(user_id, title, message, Priority.CRITICAL, metadata)

    async def send_warning(
        self, user_id: str, title: str, message: str, metadata: dict[str, Any] | None = None
    ) -> list[DeliveryResult]:
        return await self.notify_user(user_id, title, message, Priority.HIGH, metadata)

    async def send_info(
        self, user_id: str, title: str, message: str, metadata: dict[str, Any] | None = None
    ) -> list[DeliveryResult]:
        return await self.notify_user(user_id, title, message, Priority.LOW, metadata)

    # ── Fan-out ─────────────────────────────────────────────────

    async def send(self, user_id: str, msg: AlertMessage) -> list[DeliveryResult]:
        """Deliver a rendered message to every channel of *user_id*."""
        self._log_decision(user_id, msg)

        channels = await self._channels.list_channels(user_id)
        if not channels:
            logger.warning("no_notification_channels", user_id=user_id)
            return []

        results = list(await asyncio.gather(
            *(self._deliver(channel, msg) for channel in channels)
        ))

        logger.info(
            "notification_summary",
            user_id=user_id,
            title=msg.title,
            successful=sum(1 for r in results if r.success),
            total=len(results),
        )
        return results

    async def _deliver(self, channel: NotificationChannel, msg: AlertMessage) -> DeliveryResult:
        try:
            sender = self._senders.get(channel.type)
            if sender is None:
                raise UnsupportedChannelError(f"Unsupported channel type: {channel.type}")
            async with asyncio.timeout(self._delivery_timeout_secs):
                status_code = await sender.deliver(channel.value, msg)
        except Exception as exc:
            error = _describe(exc, self._delivery_timeout_secs)
            logger.warning(
                "channel_delivery_failed",
                channel_id=channel.id,
                channel_type=str(channel.type),
                error=error,
                exc_info=not isinstance(exc, TimeoutError),
            )
            return DeliveryResult(
                channel_id=channel.id,
                type=channel.type,
                success=False,
                error=error,
                status_code=getattr(exc, "status_code", None),
            )

        return DeliveryResult(
            channel_id=channel.id,
            type=channel.type,
            success=True,
            status_code=status_code,
        )

    def _log_decision(self, user_id: str, msg: AlertMessage) -> None:
        decision_logger.info(
            "alert",
            user_id=user_id,
            priority=msg.priority.value,
            title=msg.title,
            metadata=msg.metadata,
        )

    # ── Lifecycle ───────────────────────────────────────────────

    async def close(self) -> None:
        for sender in self._senders.values():
            try:
                await sender.close()
            except Exception:
                logger.exception("sender_close_error", channel_type=sender.channel_type.value)


def _describe(exc: Exception, timeout_secs: float) -> str:
    if isinstance(exc, TimeoutError):
        return f"Delivery timed out after {timeout_secs:g}s"
    return str(exc) or type(exc).__name__

"""Convenience factory for wiring the notification stack."""

from __future__ import annotations

import structlog

from pulsewatch.core.config import NotificationConfig
from pulsewatch.core.types import ChannelType
from pulsewatch.notify.channels import SENDER_TYPES, ChannelSender
from pulsewatch.notify.dispatcher import NotificationDispatcher
from pulsewatch.store.base import ChannelSource

logger = structlog.get_logger(__name__)


def create_senders(config: NotificationConfig) -> dict[ChannelType, ChannelSender]:
    """One sender per supported channel type."""
    return {channel_type: cls(config) for channel_type, cls in SENDER_TYPES.items()}


def create_dispatcher(
    config: NotificationConfig,
    channels: ChannelSource,
) -> NotificationDispatcher:
    """Build a dispatcher with every sender, reading channels from *channels*."""
    if not config.smtp.configured:
        # Email channels record a per-channel failure until SMTP is set.
        logger.warning("smtp_not_configured")
    return NotificationDispatcher(
        channels=channels,
        senders=create_senders(config),
        delivery_timeout_secs=config.delivery_timeout_secs,
    )

"""Channel senders — email, Slack, Discord and generic webhook delivery.

Each sender knows how to deliver an AlertMessage to one kind of address.
Supporting a new channel type means adding one sender class here and one
entry in ``SENDER_TYPES``.
"""

from __future__ import annotations

import abc
import asyncio
import smtplib
import threading
import time
from email.message import EmailMessage
from html import escape as html_escape
from typing import Any, ClassVar

import aiohttp
import structlog

from pulsewatch.core.config import NotificationConfig, get_settings
from pulsewatch.core.exceptions import ChannelDeliveryError, ChannelNotConfiguredError
from pulsewatch.core.types import AlertMessage, ChannelType, Priority

logger = structlog.get_logger(__name__)

_EMAIL_EMOJI: dict[Priority, str] = {
    Priority.LOW: "📢",
    Priority.MEDIUM: "⚠️",
    Priority.HIGH: "🚨",
    Priority.CRITICAL: "🔴",
}

_SLACK_COLORS: dict[Priority, str] = {
    Priority.CRITICAL: "danger",
    Priority.HIGH: "warning",
}

_DISCORD_COLORS: dict[Priority, int] = {
    Priority.LOW: 0x36A64F,       # green
    Priority.MEDIUM: 0xFFCC00,    # yellow
    Priority.HIGH: 0xFF9900,      # orange
    Priority.CRITICAL: 0xFF0000,  # red
}

# (header background, header text) for the HTML email body.
_EMAIL_PALETTE: dict[Priority, tuple[str, str]] = {
    Priority.CRITICAL: ("#fee2e2", "#dc2626"),
    Priority.HIGH: ("#fef3c7", "#d97706"),
}
_EMAIL_PALETTE_DEFAULT = ("#f3f4f6", "#374151")

_EMAIL_FOOTER = "This is an automated notification. Please do not reply to this email."


class ChannelSender(abc.ABC):
    """Delivers alerts to addresses of a single channel type."""

    channel_type: ClassVar[ChannelType]

    @abc.abstractmethod
    async def deliver(self, address: str, msg: AlertMessage) -> int | None:
        """Deliver *msg* to *address*.

        Returns the HTTP status code when the transport has one.

        Raises:
            NotificationError: The alert was not accepted.
        """

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


# ── Email ───────────────────────────────────────────────────────


class EmailSender(ChannelSender):
    """Sends plain-text + HTML email over SMTP (blocking client run in a thread).

    The whole SMTP session shares one deadline of ``delivery_timeout_secs``.
    Every step re-checks it, and socket timeouts never exceed what is left.
    If the awaiting task is cancelled (e.g. by the dispatcher's timeout), the
    thread stops before the next step, so a delivery recorded as timed out
    never sends mail afterwards.
    """

    channel_type = ChannelType.EMAIL

    def __init__(self, config: NotificationConfig | None = None) -> None:
        config = config or get_settings().notifications
        self._smtp = config.smtp
        self._budget_secs = config.delivery_timeout_secs

    def build_email(self, to: str, msg: AlertMessage) -> EmailMessage:
        emoji = _EMAIL_EMOJI.get(msg.priority, _EMAIL_EMOJI[Priority.MEDIUM])
        subject = f"{emoji} {msg.title}"

        email = EmailMessage()
        email["Subject"] = subject
        email["From"] = self._smtp.from_address
        email["To"] = to
        email.set_content(msg.message)
        email.add_alternative(render_html(subject, msg), subtype="html")
        return email

    async def deliver(self, address: str, msg: AlertMessage) -> int | None:
        if not self._smtp.configured:
            raise ChannelNotConfiguredError("Email transport not configured")
        if not self._smtp.from_address:
            raise ChannelNotConfiguredError("SMTP from address not set")

        email = self.build_email(address, msg)
        session = _SmtpDeadline(time.monotonic() + self._budget_secs, self._budget_secs)
        try:
            await asyncio.to_thread(self._send, email, session)
        except asyncio.CancelledError:
            session.abandon()
            raise
        logger.debug("email_sent", to=address, subject=email["Subject"])
        return None

    def _send(self, email: EmailMessage, session: _SmtpDeadline) -> None:
        cfg = self._smtp
        smtp_cls = smtplib.SMTP_SSL if cfg.use_ssl else smtplib.SMTP
        try:
            timeout = session.socket_timeout(cfg.timeout_secs)
            with smtp_cls(cfg.host, cfg.port, timeout=timeout) as server:
                if not cfg.use_ssl:
                    session.step(server, cfg.timeout_secs)
                    server.ehlo()
                    if server.has_extn("starttls"):
                        session.step(server, cfg.timeout_secs)
                        server.starttls()
                        session.step(server, cfg.timeout_secs)
                        server.ehlo()
                password = cfg.password.get_secret_value()
                if cfg.user and password:
                    session.step(server, cfg.timeout_secs)
                    server.login(cfg.user, password)
                session.step(server, cfg.timeout_secs)
                server.send_message(email)
        except smtplib.SMTPException as exc:
            raise ChannelDeliveryError(f"SMTP delivery failed: {exc}") from exc


class _SmtpDeadline:
    """Deadline and cancel flag shared between ``deliver`` and its worker thread."""

    def __init__(self, deadline: float, budget_secs: float) -> None:
        self._deadline = deadline
        self._budget_secs = budget_secs
        self._abandoned = threading.Event()

    def abandon(self) -> None:
        self._abandoned.set()

    def socket_timeout(self, per_op_secs: float) -> float:
        """Per-operation timeout capped at the time left; raises once none is left."""
        if self._abandoned.is_set():
            raise ChannelDeliveryError("SMTP session abandoned")
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise ChannelDeliveryError(
                f"SMTP session exceeded {self._budget_secs:g}s delivery deadline"
            )
        return min(per_op_secs, remaining)

    def step(self, server: smtplib.SMTP, per_op_secs: float) -> None:
        timeout = self.socket_timeout(per_op_secs)
        sock = getattr(server, "sock", None)
        if sock is not None:
            sock.settimeout(timeout)


def render_html(subject: str, msg: AlertMessage) -> str:
    """Styled HTML wrapper around the plain-text message."""
    background, color = _EMAIL_PALETTE.get(msg.priority, _EMAIL_PALETTE_DEFAULT)
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<div style="background: {background}; padding: 20px; border-radius: 8px; '
        'margin-bottom: 20px;">'
        f'<h2 style="margin: 0; color: {color};">{html_escape(subject)}</h2>'
        "</div>"
        '<div style="background: white; padding: 20px; border-radius: 8px; '
        'border: 1px solid #e5e7eb;">'
        '<p style="font-size: 16px; line-height: 1.5; margin: 0; white-space: pre-line;">'
        f"{html_escape(msg.message)}"
        "</p>"
        "</div>"
        '<div style="margin-top: 20px; padding: 10px; font-size: 12px; color: #6b7280; '
        'text-align: center;">'
        f"<p>{_EMAIL_FOOTER}</p>"
        "</div>"
        "</div>"
    )


# ── JSON webhooks ───────────────────────────────────────────────


class WebhookSender(ChannelSender):
    """POSTs a generic JSON alert to an arbitrary URL.

    5xx responses are delivery failures. 4xx responses are accepted by the
    transport and only logged.
    """

    channel_type = ChannelType.WEBHOOK

    def __init__(
        self,
        config: NotificationConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or get_settings().notifications
        self._session = session

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.delivery_timeout_secs),
            )
        return self._session

    def build_payload(self, msg: AlertMessage) -> dict[str, Any]:
        return {
            "title": msg.title,
            "message": msg.message,
            "priority": msg.priority.value,
            "timestamp": msg.timestamp.isoformat(),
            "type": "monitor_alert",
        }

    async def deliver(self, address: str, msg: AlertMessage) -> int | None:
        payload = self.build_payload(msg)
        headers = {"User-Agent": self._config.user_agent}
        session = self._get_session()
        async with session.post(address, json=payload, headers=headers) as resp:
            if resp.status >= 500:
                body = await resp.text()
                raise ChannelDeliveryError(
                    f"HTTP {resp.status}: {body[:200]}", status_code=resp.status
                )
            if resp.status >= 400:
                body = await resp.text()
                logger.warning(
                    "webhook_client_error",
                    channel=self.channel_type.value,
                    status=resp.status,
                    body=body[:200],
                )
            return resp.status

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


class SlackSender(WebhookSender):
    """Slack incoming-webhook payload with a colour-coded attachment."""

    channel_type = ChannelType.SLACK

    def build_payload(self, msg: AlertMessage) -> dict[str, Any]:
        return {
            "text": f"*{msg.title}*\n{msg.message}",
            "attachments": [{
                "color": _SLACK_COLORS.get(msg.priority, "good"),
                "fields": [{"title": msg.title, "value": msg.message, "short": False}],
                "footer": self._config.footer,
                "ts": int(msg.timestamp.timestamp()),
            }],
        }


class DiscordSender(WebhookSender):
    """Discord webhook payload with a single colour-coded embed."""

    channel_type = ChannelType.DISCORD

    def build_payload(self, msg: AlertMessage) -> dict[str, Any]:
        return {
            "embeds": [{
                "title": msg.title,
                "description": msg.message,
                "color": _DISCORD_COLORS.get(msg.priority, _DISCORD_COLORS[Priority.MEDIUM]),
                "timestamp": msg.timestamp.isoformat(),
                "footer": {"text": self._config.footer},
            }],
        }


SENDER_TYPES: dict[ChannelType, type[ChannelSender]] = {
    ChannelType.EMAIL: EmailSender,
    ChannelType.SLACK: SlackSender,
    ChannelType.DISCORD: DiscordSender,
    ChannelType.WEBHOOK: WebhookSender,
}

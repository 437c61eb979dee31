# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Best-effort email dispatch using async SMTP.

The dispatcher never raises. Every call returns a DeliveryResult: sent,
skipped (SMTP not configured, no recipient) or failed (SMTP error, timeout).
Callers treat email as a side channel that can not affect state.

Configuration (via environment variables, see SMTPSettings):
- SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD
- SMTP_USE_TLS: Use STARTTLS (default: true)
- SMTP_FROM_EMAIL, SMTP_FROM_NAME
- SMTP_TIMEOUT: seconds per SMTP operation
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from enum import Enum
from html import escape
from typing import Any

import aiosmtplib

from learnhub.core.config.settings import SMTPSettings
from learnhub.utils.datetime import utc_now

logger = logging.getLogger(__name__)


class DeliveryStatus(str, Enum):
    """Outcome of one email delivery attempt."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class DeliveryResult:
    """Result of a send operation.

    Attributes:
        status: Delivery status.
        recipient: Target address.
        message_id: Message-ID header of the sent email.
        error_message: Reason for failure or skip.
        sent_at: When the message was handed to the SMTP server.
    """

    status: DeliveryStatus
    recipient: str | None = None
    message_id: str | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the message was sent."""
        return self.status is DeliveryStatus.SENT


class EmailDispatcher:
    """Sends plain text + HTML emails through SMTP.

    Attributes:
        _settings: SMTP configuration.
    """

    def __init__(self, settings: SMTPSettings) -> None:
        """Initialize the dispatcher.

        Args:
            settings: SMTP configuration.
        """
        self._settings = settings
        if not settings.is_configured:
            logger.warning(
                "Email disabled: SMTP_HOST, SMTP_USERNAME, SMTP_PASSWORD "
                "or SMTP_FROM_EMAIL not set"
            )

    @property
    def is_configured(self) -> bool:
        """Whether SMTP delivery is possible."""
        return self._settings.is_configured

    async def send(
        self,
        to: str | None,
        subject: str,
        text: str,
        action_url: str | None = None,
        action_label: str | None = None,
    ) -> DeliveryResult:
        """Send one email.

        Args:
            to: Recipient address.
            subject: Subject line.
            text: Plain text body.
            action_url: Optional link rendered as a button in the HTML part.
            action_label: Button label.

        Returns:
            DeliveryResult describing the outcome.
        """
        if not self.is_configured:
            return DeliveryResult(
                status=DeliveryStatus.SKIPPED,
                recipient=to,
                error_message="Email not configured",
            )

        if not to:
            return DeliveryResult(
                status=DeliveryStatus.SKIPPED,
                error_message="No recipient email address",
            )

        message = self._build_message(to, subject, text, action_url, action_label)

        try:
            await aiosmtplib.send(
                message,
                hostname=self._settings.host,
                port=self._settings.port,
                username=self._settings.username,
                password=self._settings.password.get_secret_value(),
                start_tls=self._settings.use_tls,
                timeout=self._settings.timeout,
            )
        except Exception as e:
            logger.error("Failed to send email to %s: %s", to, str(e), exc_info=True)
            return DeliveryResult(
                status=DeliveryStatus.FAILED,
                recipient=to,
                error_message=f"SMTP error: {str(e)}",
            )

        logger.info("Email sent to %s: %s", to, subject)
        return DeliveryResult(
            status=DeliveryStatus.SENT,
            recipient=to,
            message_id=message["Message-ID"],
            sent_at=utc_now(),
        )

    def _build_message(
        self,
        to: str,
        subject: str,
        text: str,
        action_url: str | None,
        action_label: str | None,
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = f"{self._settings.from_name} <{self._settings.from_email}>"
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self._settings.from_email.split("@")[-1])

        plain = text
        if action_url:
            plain = f"{text}\n\n{action_label or 'Open'}: {action_url}"
        plain = f"{plain}\n\n---\nThis message was sent by {self._settings.from_name}."
        message.attach(MIMEText(plain, "plain", "utf-8"))
        message.attach(MIMEText(self._build_html(subject, text, action_url, action_label), "html", "utf-8"))

        return message

    @staticmethod
    def _build_html(
        subject: str,
        text: str,
        action_url: str | None,
        action_label: str | None,
    ) -> str:
        body = escape(text).replace("\n", "<br>")
        button = ""
        if action_url:
            button = (
                f'<p><a href="{escape(action_url, quote=True)}" '
                'style="background-color:#4F46E5;color:white;padding:12px 24px;'
                'text-decoration:none;border-radius:6px;">'
                f"{escape(action_label or 'Open')}</a></p>"
            )
        return (
            "<!DOCTYPE html><html><body style=\"font-family:sans-serif;\">"
            f"<h2>{escape(subject)}</h2><p>{body}</p>{button}"
            "</body></html>"
        )

"""
Email delivery for shared proposals.

When SMTP is not configured (no MAIL_SERVER) messages are logged but not
sent, which is the normal mode for development and tests.

Configuration (env vars):
    MAIL_SERVER          SMTP host (default: None → log-only mode)
    MAIL_PORT            SMTP port (default: 587)
    MAIL_USE_TLS         Use TLS (default: true)
    MAIL_USERNAME        SMTP username
    MAIL_PASSWORD        SMTP password
    MAIL_DEFAULT_SENDER  Default from address
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

_PROPOSAL_TEMPLATE = """\
<p>Hello {client_name},</p>
<p>{message}</p>
<p><a href="{view_url}">View your proposal: {title}</a></p>
<img src="{pixel_url}" width="1" height="1" alt="" style="display:none" />
"""


class EmailService:
    """SMTP sender with a log-only fallback."""

    @staticmethod
    def is_configured() -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    @classmethod
    def send(cls, *, to_email: str, subject: str, html_body: str, to_name: str | None = None) -> bool:
        """Send one message. Returns True when delivered (or logged in dev mode)."""
        if not cls.is_configured():
            logger.info("Email (dev mode): to=%s subject='%s'", to_email, subject)
            return True

        try:
            cls._send_smtp(to_email=to_email, to_name=to_name, subject=subject, html_body=html_body)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email failed: to=%s error=%s", to_email, exc)
            return False
        logger.info("Email sent: to=%s subject='%s'", to_email, subject)
        return True

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None, subject: str, html_body: str) -> None:
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER") or f"noreply@{server}"

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if cfg.get("MAIL_USE_TLS", True):
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)


def send_proposal_email(proposal, *, recipient_email, subject, message, view_url, pixel_url) -> bool:
    """Render and send the "your proposal is ready" message with its open pixel."""
    body = _PROPOSAL_TEMPLATE.format(
        client_name=html.escape(proposal.client_name or ""),
        message=html.escape(message or "Please find your proposal below."),
        view_url=html.escape(view_url, quote=True),
        title=html.escape(proposal.title or ""),
        pixel_url=html.escape(pixel_url, quote=True),
    )
    return EmailService.send(
        to_email=recipient_email,
        to_name=proposal.client_name,
        subject=subject,
        html_body=body,
    )

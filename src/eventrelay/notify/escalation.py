"""
Module: escalation.py
Description: Operator notification when an event exhausts its retries.

Escalation is best effort. Sinks log their own failures and never raise,
so a broken mail server cannot stall or crash a retry worker.

Key Components:
- EscalationSink: Protocol with notify(subject, body)
- LogEscalationSink: Writes the escalation to the structured log
- SMTPEscalationSink: Mails the operator via aiosmtplib
- build_escalation_sink(): Select a sink from settings

Dependencies: aiosmtplib, email
"""

from email.message import EmailMessage
from typing import Optional, Protocol

import aiosmtplib

from eventrelay.utils.logger import get_logger

logger = get_logger(__name__)


class EscalationSink(Protocol):
    """Terminal failure notification channel."""

    async def notify(self, subject: str, body: str) -> None:
        ...


class LogEscalationSink:
    """Escalation sink that only logs."""

    async def notify(self, subject: str, body: str) -> None:
        logger.critical("Escalation", subject=subject, body=body)


class SMTPEscalationSink:
    """
    Escalation sink sending plain-text mail to one operator address.

    Supports STARTTLS and optional login. Errors are logged and swallowed.
    """

    def __init__(
        self,
        hostname: str,
        sender: str,
        recipient: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 30.0
    ):
        if not hostname:
            raise ValueError("SMTP hostname is required")
        if not sender or not recipient:
            raise ValueError("sender and recipient are required")

        self.hostname = hostname
        self.port = port
        self.sender = sender
        self.recipient = recipient
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

        logger.info(
            "SMTP escalation sink initialized",
            hostname=hostname,
            port=port,
            recipient=recipient,
            use_tls=use_tls
        )

    def build_message(self, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = self.recipient
        message["Subject"] = subject
        message.set_content(body)
        return message

    async def notify(self, subject: str, body: str) -> None:
        message = self.build_message(subject, body)

        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                start_tls=self.use_tls,
                timeout=self.timeout,
            )
            logger.info("Escalation mail sent", subject=subject, recipient=self.recipient)

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(
                "Error notifying operator",
                subject=subject,
                recipient=self.recipient,
                error=str(e),
                error_type=type(e).__name__
            )


def build_escalation_sink(settings) -> EscalationSink:
    """Create the sink named by settings.escalation_channel."""
    if settings.escalation_channel == "smtp":
        return SMTPEscalationSink(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.escalation_sender,
            recipient=settings.escalation_recipient,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LogEscalationSink()

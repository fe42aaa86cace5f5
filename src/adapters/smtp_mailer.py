"""SMTP mail adapter.

Implements the core MailerPort with smtplib. Each message opens its own SMTP
session in a worker thread so deliveries can overlap without blocking the
event loop.
"""

from __future__ import annotations

import asyncio
from email.message import EmailMessage
from email.utils import make_msgid
import logging
import smtplib

from core.config import EmailerConfig
from core.errors import MailError
from core.models import MailMessage, MailReceipt

LOGGER = logging.getLogger(__name__)


class SmtpMailer:
    """Mailer adapter that delivers plain-text messages over SMTP."""

    def __init__(self, config: EmailerConfig) -> None:
        self._config = config
        self._slots = asyncio.Semaphore(max(1, config.max_connections))

    def _build(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["From"] = self._config.sender
        email["To"] = message.to
        email["Subject"] = message.subject
        email["Message-ID"] = make_msgid()
        email.set_content(message.text)
        return email

    def _open(self) -> smtplib.SMTP:
        config = self._config
        if config.secure:
            return smtplib.SMTP_SSL(config.host, config.port)
        smtp = smtplib.SMTP(config.host, config.port)
        smtp.ehlo()
        if smtp.has_extn("starttls"):
            smtp.starttls()
            smtp.ehlo()
        return smtp

    def _deliver(self, message: MailMessage) -> MailReceipt:
        try:
            email = self._build(message)
            with self._open() as smtp:
                if self._config.user:
                    smtp.login(self._config.user, self._config.password or "")
                refused = smtp.send_message(email)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            raise MailError(f"Delivery to {message.to} failed: {exc}") from exc

        accepted = tuple(addr for addr in [message.to] if addr not in refused)
        return MailReceipt(
            accepted=accepted,
            rejected=tuple(refused),
            message_id=email["Message-ID"],
        )

    async def send(self, message: MailMessage) -> MailReceipt:
        """Send one message, bounded by the configured connection limit."""

        async with self._slots:
            receipt = await asyncio.to_thread(self._deliver, message)
        LOGGER.debug("SMTP accepted %s for %s", receipt.accepted, message.to)
        return receipt

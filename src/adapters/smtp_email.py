"""
SMTP Email Adapter.

Sends multipart (plain text + HTML) emails over SMTP with STARTTLS.
One connection per message; the transport is not shared between requests.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid

from src.core.ports.email import EmailAddress, EmailResult, EmailSendError

logger = logging.getLogger(__name__)


@dataclass
class SMTPEmailAdapter:
    """Implements EmailPort over an SMTP relay."""

    host: str
    port: int
    sender: EmailAddress
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout_seconds: float = 10.0

    def build_message(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = str(self.sender)
        msg["To"] = recipient
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(body_text)
        msg.add_alternative(body_html, subtype="html")
        return msg

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str,
    ) -> EmailResult:
        msg = self.build_message(recipient, subject, body_html, body_text)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except smtplib.SMTPRecipientsRefused as e:
            raise EmailSendError(recipient, str(e), retriable=False) from e
        except (smtplib.SMTPException, OSError) as e:
            raise EmailSendError(recipient, str(e)) from e

        logger.info("Email sent to %s via %s:%d", recipient, self.host, self.port)
        return EmailResult.success(recipient, msg["Message-ID"])

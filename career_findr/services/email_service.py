"""
Email Service - outgoing mail.

With SMTP settings the message goes to the mail server. Without them
(development, tests) it is held in `Mailer.outbox` and logged, so the
link inside can still be followed.
"""

import logging
import smtplib
from collections import deque
from email.message import EmailMessage
from typing import Deque, Optional
from urllib.parse import urlencode

from career_findr.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

OUTBOX_SIZE = 100


class MailDeliveryError(Exception):
    pass


class Mailer:

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.outbox: Deque[EmailMessage] = deque(maxlen=OUTBOX_SIZE)

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.settings.smtp_host)

    def send(self, to_email: str, subject: str, text_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self.settings.mail_from_name} <{self.settings.mail_from}>"
        msg["To"] = to_email
        msg.set_content(text_body)

        if self.smtp_enabled:
            self._deliver(msg)
        else:
            logger.info("SMTP not configured, holding email for %s: %s", to_email, subject)
        self.outbox.append(msg)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
                if s.smtp_use_tls:
                    server.starttls()
                if s.smtp_username:
                    server.login(s.smtp_username, s.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP error while sending email to %s: %s", msg["To"], exc)
            raise MailDeliveryError(str(exc)) from exc

    # ------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------

    def password_reset_link(self, token: str) -> str:
        return f"{self.settings.password_reset_url}?{urlencode({'token': token})}"

    def send_password_reset(self, email: str, token: str) -> EmailMessage:
        link = self.password_reset_link(token)
        minutes = self.settings.password_reset_expire_minutes
        return self.send(
            email,
            "Reset your Career Findr password",
            "We received a request to reset your password.\n\n"
            f"Open this link to choose a new one (valid for {minutes} minutes):\n{link}\n\n"
            "If you did not ask for this, you can ignore this email.",
        )


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    """Shared mailer (singleton pattern)."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer

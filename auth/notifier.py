"""
auth/notifier.py -- Outbound email for OTP codes and magic links.

Notifier renders the two messages this service sends and hands them to
deliver(). Subclasses only implement delivery:

  SMTPNotifier -- STARTTLS + login against the configured relay. Any SMTP or
                  socket error is re-raised as NotifierFailure so callers see
                  one domain error regardless of transport.
  LogNotifier  -- development fallback when SMTP_HOST is unset. Writes the
                  message to the log instead of sending it, so a local signup
                  can be completed by reading the code from the console.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import html
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from auth.errors import NotifierFailure

logger = logging.getLogger("authgate.auth.notifier")


class Notifier(ABC):
    """Base class: message templates plus an abstract deliver()."""

    def send_otp(self, to_email: str, code: str) -> None:
        subject = "Your Email Verification OTP"
        text_body = f"Your OTP for email verification is: {code}\nThis OTP will expire in 15 minutes.\n"
        html_body = (
            f"<p>Your OTP for email verification is: <strong>{html.escape(code)}</strong></p>"
            "<p>This OTP will expire in 15 minutes.</p>"
        )
        self.deliver(to_email, subject, text_body, html_body)

    def send_magic_link(self, to_email: str, link: str) -> None:
        subject = "Your sign-in link"
        text_body = f"Use this link to sign in:\n{link}\nThe link expires in 15 minutes.\n"
        html_body = (
            f'<p><a href="{html.escape(link, quote=True)}">Click here to sign in</a></p>'
            "<p>The link expires in 15 minutes. If you did not request it, ignore this email.</p>"
        )
        self.deliver(to_email, subject, text_body, html_body)

    @abstractmethod
    def deliver(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        """Send one message. Implementations raise NotifierFailure when delivery fails."""


class SMTPNotifier(Notifier):
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_email: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email or username
        self.timeout = timeout

    def deliver(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("SMTP delivery to %s via %s:%d failed: %s", to_email, self.host, self.port, exc)
            raise NotifierFailure() from exc


class LogNotifier(Notifier):
    def deliver(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        logger.info("[dev mail] to=%s subject=%r\n%s", to_email, subject, text_body)

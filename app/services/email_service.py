# app/services/email_service.py
"""
Outbound email capability used to deliver OTP codes.

Anything with send(to, subject, body) -> bool satisfies it. The SMTP
implementation logs transport errors and reports False; it never raises,
so the caller decides what a failed delivery means.
"""

import smtplib
import socket
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class EmailSender:
    def send(self, to: str, subject: str, body: str) -> bool:
        raise NotImplementedError


class SmtpEmailSender(EmailSender):
    def __init__(self, host=None, port=None, user=None, password=None, from_addr=None, use_ssl=None,
                 timeout=None):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user or settings.SMTP_USER
        self.password = password or settings.SMTP_PASSWORD
        self.from_addr = from_addr or settings.SMTP_FROM or self.user
        self.use_ssl = settings.SMTP_USE_SSL if use_ssl is None else use_ssl
        self.timeout = timeout or settings.SMTP_TIMEOUT_SECONDS

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        server.starttls()
        return server

    def send(self, to: str, subject: str, body: str) -> bool:
        if not self.host or not self.from_addr:
            logger.error("[EMAIL] SMTP_HOST / SMTP_FROM not configured, cannot send")
            return False

        msg = MIMEMultipart()
        msg["From"] = self.from_addr
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain"))

        try:
            server = self._connect()
            try:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(from_addr=self.from_addr, to_addrs=[to], msg=msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, socket.error) as e:
            logger.error(f"[EMAIL] Delivery to {to} failed: {e}", exc_info=True)
            return False

        logger.info(f"[EMAIL] Sent '{subject}' to {to}")
        return True


def get_email_sender() -> EmailSender:
    """FastAPI dependency: overridden in tests to intercept OTP delivery."""
    return SmtpEmailSender()

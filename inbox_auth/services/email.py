from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional, Protocol

from inbox_auth.config import Settings
from inbox_auth.services.errors import DeliveryError

LOGGER = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


class NotificationSender(Protocol):
    def send(
        self, to: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        ...


class MailTransport(NotificationSender, Protocol):
    def verify(self) -> None:
        ...


class SmtpEmailSender:
    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        secure: bool = False,
        timeout: int = SMTP_TIMEOUT_SECONDS,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._secure = secure
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.smtp_from,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            secure=settings.smtp_secure,
        )

    def send(
        self, to: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        message = _build_message(self._sender, to, subject, body, html)
        try:
            with self._connect() as client:
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            LOGGER.error(
                "SMTP delivery failed host=%s port=%s to=%s error=%r",
                self._host,
                self._port,
                to,
                exc,
            )
            raise DeliveryError("Failed to send code") from exc

    def verify(self) -> None:
        try:
            with self._connect() as client:
                client.noop()
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(str(exc) or "SMTP verification failed") from exc

    def _connect(self) -> smtplib.SMTP:
        if not self._host:
            raise DeliveryError("SMTP host is not configured")
        context = ssl.create_default_context()
        if self._secure:
            client: smtplib.SMTP = smtplib.SMTP_SSL(
                self._host, self._port, context=context, timeout=self._timeout
            )
        else:
            client = smtplib.SMTP(self._host, self._port, timeout=self._timeout)
        try:
            if not self._secure and client.has_extn("starttls"):
                client.starttls(context=context)
            if self._username and self._password:
                client.login(self._username, self._password)
        except (smtplib.SMTPException, OSError):
            client.close()
            raise
        return client


class ConsoleEmailSender:
    """Logs outgoing mail instead of delivering it. Local development only."""

    def send(
        self, to: str, subject: str, body: str, html: Optional[str] = None
    ) -> None:
        LOGGER.warning("[console-email] to=%s subject=%s\n%s", to, subject, body)

    def verify(self) -> None:
        return None


def build_sender(settings: Settings) -> MailTransport:
    if settings.email_backend == "console":
        return ConsoleEmailSender()
    if settings.email_backend != "smtp":
        raise ValueError(f"Unknown email backend: {settings.email_backend!r}")
    return SmtpEmailSender.from_settings(settings)


def build_code_email(code: str, ttl_seconds: int) -> tuple[str, str]:
    minutes = max(1, ttl_seconds // 60)
    text = f"Your verification code is {code}. It expires in {minutes} minutes."
    html = (
        '<div style="font-family:Arial,sans-serif">'
        "<p>Your verification code:</p>"
        '<p style="font-size:28px;font-weight:700;letter-spacing:4px">'
        f"{code}</p>"
        f"<p>Expires in {minutes} minutes.</p>"
        "</div>"
    )
    return text, html


def _build_message(
    sender: str, recipient: str, subject: str, body: str, html: Optional[str]
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body)
    if html:
        message.add_alternative(html, subtype="html")
    return message

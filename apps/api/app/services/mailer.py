from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from typing import Protocol

from ..settings import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html: str
    text: str | None = None
    to_name: str | None = None


class Mailer(Protocol):
    @property
    def is_configured(self) -> bool: ...

    def send(self, message: OutgoingEmail) -> str: ...


class SMTPMailer:
    def __init__(
        self,
        host: str,
        port: int,
        user: str | None,
        password: str | None,
        secure: bool = False,
        from_address: str | None = None,
        from_name: str = "OneClickTag",
        timeout_seconds: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.from_address = from_address or user
        self.from_name = from_name
        self.timeout_seconds = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    def build_message(self, message: OutgoingEmail) -> MIMEMultipart:
        mime = MIMEMultipart("alternative")
        if message.text:
            mime.attach(MIMEText(message.text, "plain", "utf-8"))
        mime.attach(MIMEText(message.html, "html", "utf-8"))
        mime["Subject"] = message.subject
        mime["From"] = formataddr((self.from_name, self.from_address or ""))
        mime["To"] = formataddr((message.to_name, message.to)) if message.to_name else message.to
        domain = (self.from_address or "localhost").rpartition("@")[2] or "localhost"
        mime["Message-ID"] = make_msgid(domain=domain)
        return mime

    def send(self, message: OutgoingEmail) -> str:
        if not self.is_configured:
            raise EmailDeliveryError("Email service not configured")
        mime = self.build_message(message)
        context = ssl.create_default_context()
        try:
            if self.secure:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds, context=context) as server:
                    server.login(self.user or "", self.password or "")
                    server.sendmail(self.from_address or "", [message.to], mime.as_string())
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as server:
                    server.ehlo()
                    server.starttls(context=context)
                    server.ehlo()
                    server.login(self.user or "", self.password or "")
                    server.sendmail(self.from_address or "", [message.to], mime.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("smtp send to %s failed: %s", message.to, exc)
            raise EmailDeliveryError(str(exc)) from exc
        return str(mime["Message-ID"])


def get_mailer() -> Mailer:
    return SMTPMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_pass,
        secure=settings.smtp_secure,
        from_address=settings.smtp_from,
        from_name=settings.smtp_from_name,
        timeout_seconds=settings.smtp_timeout_seconds,
    )

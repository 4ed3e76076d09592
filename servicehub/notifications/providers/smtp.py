import asyncio
import logging
import smtplib
import ssl
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

from ...models import Channel
from ..errors import NotificationError, ProviderAuthError
from ..templates import render_email_html
from .base import NotificationProvider

logger = logging.getLogger(__name__)


class SmtpEmailProvider(NotificationProvider):
    """
    Email via the workspace's own SMTP server.

    Config keys: host, port (default 587), username, password, use_tls (default true), from_address.
    """

    name = "smtp"
    channel = Channel.EMAIL.value

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def send(self, recipient: str, subject: Optional[str], content: str, config: dict[str, Any]) -> Optional[str]:
        if not config.get("host") or not config.get("from_address"):
            raise ProviderAuthError("SMTP host or from address not configured", code="SMTP_NOT_CONFIGURED")
        # smtplib is blocking
        return await asyncio.to_thread(self._send_sync, recipient, subject or "Notification", content, config)

    def _send_sync(self, recipient: str, subject: str, content: str, config: dict[str, Any]) -> str:
        host = config["host"]
        port = int(config.get("port") or 587)
        from_address = config["from_address"]
        use_tls = config.get("use_tls", True)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_address
        msg["To"] = recipient
        msg.attach(MIMEText(content, "plain"))
        msg.attach(MIMEText(render_email_html(subject, content), "html"))

        try:
            if port == 465:
                server = smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=self.timeout)
            else:
                server = smtplib.SMTP(host, port, timeout=self.timeout)
                if use_tls:
                    server.starttls(context=ssl.create_default_context())

            try:
                if config.get("username"):
                    server.login(config["username"], config.get("password", ""))
                server.sendmail(from_address.split("<")[-1].rstrip(">"), [recipient], msg.as_string())
            finally:
                server.quit()
        except smtplib.SMTPAuthenticationError as e:
            raise ProviderAuthError(f"SMTP authentication failed: {e}", code="SMTP_AUTH_FAILED") from e
        except smtplib.SMTPRecipientsRefused as e:
            raise NotificationError(f"SMTP recipient refused: {e}", code="SMTP_RECIPIENT_REFUSED", retryable=False) from e
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP send failed: {e}", code="SMTP_ERROR") from e

        logger.info(f"✅ SMTP email sent via {host} to {recipient}")
        return f"smtp-{uuid.uuid4()}"

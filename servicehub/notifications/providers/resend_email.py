import asyncio
import logging
import threading
from typing import Any, Optional

import resend

from ...config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from ...models import Channel
from ..errors import NotificationError, ProviderAuthError
from ..templates import render_email_html
from .base import NotificationProvider

logger = logging.getLogger(__name__)

AUTH_STATUS_CODES = {"401", "403"}

# resend reads its key from a module global, so setting it and sending must not interleave
_send_lock = threading.Lock()


class ResendEmailProvider(NotificationProvider):
    """
    Email via Resend.

    Config keys (all optional): api_key, from_address. Workspaces without their
    own key fall back to the platform RESEND_API_KEY.
    """

    name = "resend"
    channel = Channel.EMAIL.value

    def __init__(self, default_api_key: Optional[str] = RESEND_API_KEY, default_from: str = EMAIL_FROM_ADDRESS):
        self.default_api_key = default_api_key
        self.default_from = default_from

    async def send(self, recipient: str, subject: Optional[str], content: str, config: dict[str, Any]) -> Optional[str]:
        api_key = config.get("api_key") or self.default_api_key
        if not api_key:
            raise ProviderAuthError("Resend API key not configured", code="RESEND_NOT_CONFIGURED")

        subject = subject or "Notification"
        email_data = {
            "from": config.get("from_address") or self.default_from,
            "to": [recipient],
            "subject": subject,
            "html": render_email_html(subject, content),
            "text": content,
        }

        logger.info(f"📧 Sending email via Resend to: {recipient}")
        try:
            response = await asyncio.to_thread(self._send_sync, api_key, email_data)
        except Exception as e:
            code = str(getattr(e, "code", "") or "")
            if code in AUTH_STATUS_CODES:
                raise ProviderAuthError(f"Resend rejected credentials: {e}", code=code) from e
            raise NotificationError(f"Resend send failed: {e}", code=code or "RESEND_ERROR") from e

        if isinstance(response, dict):
            return response.get("id")
        return getattr(response, "id", None)

    @staticmethod
    def _send_sync(api_key: str, email_data: dict[str, Any]):
        with _send_lock:
            resend.api_key = api_key
            return resend.Emails.send(email_data)

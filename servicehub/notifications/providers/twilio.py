"""
Twilio SMS provider
Sends SMS through the Twilio REST API
"""

import logging
from typing import Any, Optional

import httpx

from ...models import Channel
from ..errors import NotificationError, ProviderAuthError
from .base import NotificationProvider

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"

# 20003: authentication failed, 21603: 'From' number missing or not owned by the account
AUTH_ERROR_CODES = {20003, 21603}


class TwilioSmsProvider(NotificationProvider):
    """
    Config keys: account_sid, auth_token, and either messaging_service_sid or phone_number.
    """

    name = "twilio"
    channel = Channel.SMS.value

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._http_client = http_client
        self.timeout = timeout

    async def send(self, recipient: str, subject: Optional[str], content: str, config: dict[str, Any]) -> Optional[str]:
        account_sid = config.get("account_sid")
        auth_token = config.get("auth_token")
        if not account_sid or not auth_token:
            raise ProviderAuthError("Twilio credentials not configured", code="TWILIO_NOT_CONFIGURED")

        # Twilio only accepts E.164
        if not recipient or not recipient.startswith("+"):
            raise NotificationError(
                "Phone number must be in E.164 format (e.g., +1234567890)",
                code="TWILIO_INVALID_PHONE",
                retryable=False,
            )

        data = {"To": recipient, "Body": content}
        if config.get("messaging_service_sid"):
            data["MessagingServiceSid"] = config["messaging_service_sid"]
        elif config.get("phone_number"):
            data["From"] = config["phone_number"]
        else:
            raise ProviderAuthError("Twilio sender (phone number or messaging service) not configured", code="21603")

        logger.info(f"🚀 Sending SMS to Twilio API for {recipient}")
        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, account_sid, auth_token, data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, account_sid, auth_token, data)
        except httpx.HTTPError as e:
            raise NotificationError(f"Twilio request failed: {e}", code="TWILIO_HTTP_ERROR") from e

        logger.info(f"📡 Twilio API response status: {response.status_code}")

        if response.status_code in [200, 201]:
            return response.json().get("sid")

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        code = error_data.get("code")
        message = error_data.get("message", response.text)

        if response.status_code == 401 or code in AUTH_ERROR_CODES:
            raise ProviderAuthError(f"Twilio authentication failed: {message}", code=str(code or 401))

        # Throttling and server errors are transient; any other 4xx is a bad request
        retryable = response.status_code == 429 or response.status_code >= 500
        raise NotificationError(f"Twilio error {code}: {message}", code=str(code or response.status_code), retryable=retryable)

    async def _post(self, client: httpx.AsyncClient, account_sid: str, auth_token: str, data: dict) -> httpx.Response:
        return await client.post(
            f"{TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json",
            auth=(account_sid, auth_token),
            data=data,
            timeout=self.timeout,
        )

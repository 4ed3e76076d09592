"""
Notification Gateway
Resolves a workspace's channel integration, sends through its provider with
retries, and records every attempt in the integration log.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..models import Channel
from .credentials import decrypt_config
from .errors import NotificationError
from .providers import MockProvider, NotificationProvider, ResendEmailProvider, SmtpEmailProvider, TwilioSmsProvider
from .repository import IntegrationRepository

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    success: bool
    channel: str
    recipient: str
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None
    log_id: Optional[str] = None
    attempts: int = 0


def default_providers() -> list[NotificationProvider]:
    return [
        TwilioSmsProvider(),
        ResendEmailProvider(),
        SmtpEmailProvider(),
        MockProvider(Channel.EMAIL.value),
        MockProvider(Channel.SMS.value),
    ]


class NotificationGateway:
    """
    send() never raises. Retryable provider errors are retried with exponential
    backoff (base, 2*base, 4*base...); auth/config errors fail on the first attempt.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        providers: Optional[Iterable[NotificationProvider]] = None,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_factory = session_factory
        self.providers = {
            (provider.channel, provider.name): provider
            for provider in (default_providers() if providers is None else providers)
        }
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    async def send(
        self,
        workspace_id: str,
        channel: str,
        recipient: str,
        content: str,
        subject: Optional[str] = None,
        message_type: str = "generic",
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> SendResult:
        channel = getattr(channel, "value", channel)
        db: Session = self.session_factory()
        try:
            return await self._send(
                db, workspace_id, channel, recipient, content, subject, message_type, entity_type, entity_id
            )
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Unexpected error sending {channel} to {recipient}: {e}", exc_info=True)
            return SendResult(success=False, channel=channel, recipient=recipient, error=str(e), code="SEND_ERROR")
        finally:
            db.close()

    async def _send(
        self,
        db: Session,
        workspace_id: str,
        channel: str,
        recipient: str,
        content: str,
        subject: Optional[str],
        message_type: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
    ) -> SendResult:
        integration = IntegrationRepository.get_active_integration(db, workspace_id, channel)
        if not integration:
            logger.warning(f"⚠️ No active {channel} integration for workspace {workspace_id}")
            return SendResult(
                success=False,
                channel=channel,
                recipient=recipient,
                error=f"No active {channel} integration configured",
                code="INTEGRATION_NOT_CONFIGURED",
            )

        provider = self.providers.get((channel, integration.provider))
        if provider is None:
            logger.warning(f"⚠️ Unsupported {channel} provider '{integration.provider}' for workspace {workspace_id}")
            return SendResult(
                success=False,
                channel=channel,
                recipient=recipient,
                error=f"Unsupported provider: {integration.provider}",
                code="PROVIDER_NOT_SUPPORTED",
            )

        try:
            config = decrypt_config(integration.config)
        except Exception as e:
            logger.error(f"❌ Failed to decrypt {integration.provider} credentials for workspace {workspace_id}: {e}")
            return SendResult(
                success=False,
                channel=channel,
                recipient=recipient,
                error="Failed to decrypt credentials",
                code="CREDENTIALS_INVALID",
            )

        log = IntegrationRepository.create_log(
            db,
            workspace_id=workspace_id,
            integration_id=integration.id,
            channel=channel,
            provider=integration.provider,
            recipient=recipient,
            subject=subject,
            content=content,
            message_type=message_type,
            entity_type=entity_type,
            entity_id=entity_id,
        )

        last_error: Optional[NotificationError] = None
        attempt = 0
        for attempt in range(1, self.max_attempts + 1):
            try:
                message_id = await provider.send(recipient, subject, content, config)
            except NotificationError as e:
                last_error = e
            except Exception as e:
                # Unknown provider failure: record it, don't retry blindly
                last_error = NotificationError(str(e), code="PROVIDER_ERROR", retryable=False)
            else:
                IntegrationRepository.mark_sent(db, log, message_id)
                logger.info(f"✅ {channel} sent via {integration.provider} to {recipient} ({message_type})")
                return SendResult(
                    success=True,
                    channel=channel,
                    recipient=recipient,
                    provider_message_id=message_id,
                    log_id=log.id,
                    attempts=attempt,
                )

            IntegrationRepository.record_attempt_failure(db, log, str(last_error))
            if not last_error.retryable:
                logger.error(f"❌ {integration.provider} send failed without retry: {last_error}")
                break

            if attempt < self.max_attempts:
                delay = self.backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    f"⚠️ {integration.provider} send attempt {attempt}/{self.max_attempts} failed, "
                    f"retrying in {delay}s: {last_error}"
                )
                await self._sleep(delay)

        IntegrationRepository.mark_failed(db, log, str(last_error))
        logger.error(f"❌ {channel} to {recipient} failed after {attempt} attempt(s): {last_error}")
        return SendResult(
            success=False,
            channel=channel,
            recipient=recipient,
            error=str(last_error),
            code=last_error.code,
            log_id=log.id,
            attempts=attempt,
        )

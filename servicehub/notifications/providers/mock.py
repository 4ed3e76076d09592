import logging
import uuid
from typing import Any, Optional

from .base import NotificationProvider

logger = logging.getLogger(__name__)


class MockProvider(NotificationProvider):
    """Logs instead of sending. Configure an integration with provider="mock" in development."""

    name = "mock"

    def __init__(self, channel: str):
        self.channel = channel

    async def send(self, recipient: str, subject: Optional[str], content: str, config: dict[str, Any]) -> Optional[str]:
        logger.info(f"🧪 [mock {self.channel}] to={recipient} subject={subject!r}: {content}")
        return f"mock-{uuid.uuid4()}"

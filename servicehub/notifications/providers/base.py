from abc import ABC, abstractmethod
from typing import Any, Optional


class NotificationProvider(ABC):
    """One outbound provider (Twilio, Resend, SMTP...). Raises NotificationError on failure."""

    name: str = ""
    channel: str = ""

    @abstractmethod
    async def send(self, recipient: str, subject: Optional[str], content: str, config: dict[str, Any]) -> Optional[str]:
        """Deliver one message. Returns the provider's message id."""

from .errors import NotificationError, ProviderAuthError
from .gateway import NotificationGateway, SendResult

__all__ = ["NotificationError", "NotificationGateway", "ProviderAuthError", "SendResult"]

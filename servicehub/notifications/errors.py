"""Notification error taxonomy"""

from typing import Optional


class NotificationError(Exception):
    """A provider failed to deliver. retryable=False means retrying cannot help."""

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = True):
        super().__init__(message)
        self.code = code
        self.retryable = retryable


class ProviderAuthError(NotificationError):
    """Bad or missing credentials / configuration. Never retried."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message, code=code, retryable=False)

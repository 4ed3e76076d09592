from .base import NotificationProvider
from .mock import MockProvider
from .resend_email import ResendEmailProvider
from .smtp import SmtpEmailProvider
from .twilio import TwilioSmsProvider

__all__ = [
    "MockProvider",
    "NotificationProvider",
    "ResendEmailProvider",
    "SmtpEmailProvider",
    "TwilioSmsProvider",
]

"""Inbox domain - conversations and replies"""

from .router import router

__all__ = ["router"]

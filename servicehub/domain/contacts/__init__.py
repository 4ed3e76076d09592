"""Contacts domain - people a workspace talks to"""

from .router import router

__all__ = ["router"]

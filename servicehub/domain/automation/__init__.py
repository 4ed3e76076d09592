"""Automation domain - operational view of the automation core"""

from .router import router

__all__ = ["router"]

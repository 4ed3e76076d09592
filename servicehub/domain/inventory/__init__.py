"""Inventory domain - stock levels, usage logs and low stock alerts"""

from .router import router

__all__ = ["router"]

"""Bookings domain - bookings and public (self-service) booking"""

from .router import public_router, router

__all__ = ["public_router", "router"]

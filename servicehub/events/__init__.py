from .bus import EventBus
from .middleware import EventMetrics, logging_middleware
from .registry import Events, get_event_metadata, register_event, validate_event_payload

__all__ = [
    "EventBus",
    "EventMetrics",
    "Events",
    "get_event_metadata",
    "logging_middleware",
    "register_event",
    "validate_event_payload",
]

"""Cross-cutting event bus middlewares"""

import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


async def logging_middleware(event_name: str, payload: dict[str, Any], call_next) -> None:
    logger.info(f"📨 Event {event_name} (workspace={payload.get('workspace_id')})")
    await call_next()


class EventMetrics:
    """Per-event counters: emitted, delivered (middleware chain completed) and cumulative dispatch time"""

    def __init__(self):
        self._stats: dict[str, dict[str, float]] = {}

    async def __call__(self, event_name: str, payload: dict[str, Any], call_next) -> None:
        stats = self._stats.setdefault(event_name, {"emitted": 0, "delivered": 0, "dispatch_seconds": 0.0})
        stats["emitted"] += 1
        started = time.perf_counter()
        await call_next()
        stats["delivered"] += 1
        stats["dispatch_seconds"] += time.perf_counter() - started

    def snapshot(self) -> dict[str, dict[str, float]]:
        return {name: dict(stats) for name, stats in self._stats.items()}

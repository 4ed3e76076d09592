"""
Automation context
Owns the event bus, job queue and handlers for one process. Built at startup
(FastAPI lifespan or the ARQ worker's on_startup) and closed at shutdown.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from sqlalchemy.orm import sessionmaker

from ..config import AutomationSettings
from ..events import EventBus, EventMetrics, logging_middleware
from ..notifications import NotificationGateway
from ..notifications.providers import NotificationProvider
from ..queue import ArqQueueBackend, AutomationScheduler, JobQueue, QueueBackend, QueueName
from .cancellation import CancellationHandlers
from .handlers import AutomationHandlers
from .idempotency import IdempotencyGuard
from .processors import AutomationProcessors

logger = logging.getLogger(__name__)


@dataclass
class AutomationContext:
    settings: AutomationSettings
    bus: EventBus
    queue: JobQueue
    scheduler: AutomationScheduler
    gateway: NotificationGateway
    guard: IdempotencyGuard
    handlers: AutomationHandlers
    cancellation: CancellationHandlers
    processors: AutomationProcessors
    metrics: EventMetrics
    started: bool = False
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list)

    async def start(self, consume: bool = True) -> None:
        """Subscribe handlers and attach processors. consume=False skips starting an in-process consumer."""
        if self.started:
            return

        self._unsubscribers = self.handlers.register() + self.cancellation.register()

        processors = self.processors.as_map()
        if consume:
            started = await self.queue.register_worker(QueueName.AUTOMATION, processors)
            if not started:
                logger.warning("⚠️ Automation worker not running - scheduled automation is disabled")
        else:
            self.queue.register_processors(QueueName.AUTOMATION, processors)

        self.started = True
        logger.info("✅ Automation context started")

    async def close(self) -> None:
        await self.bus.drain(timeout=self.settings.shutdown_grace_seconds)
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        await self.queue.close(grace_period=self.settings.shutdown_grace_seconds)
        self.started = False
        logger.info("Automation context closed")


def build_automation_context(
    session_factory: sessionmaker,
    settings: Optional[AutomationSettings] = None,
    backend: Optional[QueueBackend] = None,
    providers: Optional[Iterable[NotificationProvider]] = None,
) -> AutomationContext:
    """
    Wire the automation core. With no backend given, an ARQ backend is used when
    automation is enabled; otherwise the queue runs disabled (every add is a no-op).
    """
    settings = settings or AutomationSettings.from_env()
    if backend is None and settings.enabled:
        backend = ArqQueueBackend()

    bus = EventBus()
    metrics = EventMetrics()
    bus.use(metrics)
    bus.use(logging_middleware)

    queue = JobQueue(backend if settings.enabled else None, concurrency=settings.worker_concurrency)
    scheduler = AutomationScheduler(queue, settings)
    gateway = NotificationGateway(
        session_factory,
        providers=providers,
        max_attempts=settings.notification_max_attempts,
        backoff_seconds=settings.notification_backoff_seconds,
    )
    guard = IdempotencyGuard(window_seconds=settings.dedup_window_seconds)
    handlers = AutomationHandlers(bus, scheduler, gateway, session_factory, guard, settings)
    cancellation = CancellationHandlers(bus, scheduler)
    processors = AutomationProcessors(bus, handlers, session_factory)

    return AutomationContext(
        settings=settings,
        bus=bus,
        queue=queue,
        scheduler=scheduler,
        gateway=gateway,
        guard=guard,
        handlers=handlers,
        cancellation=cancellation,
        processors=processors,
        metrics=metrics,
    )

"""
Event Bus
In-process publish/subscribe with warn-only payload validation,
a middleware chain, and per-handler fault isolation.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import BaseModel

from .registry import Events, validate_event_payload

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Union[Awaitable[Any], Any]]
Continuation = Callable[[], Awaitable[None]]
Middleware = Callable[[str, dict[str, Any], Continuation], Union[Awaitable[None], None]]


@dataclass(eq=False)
class _Subscription:
    handler: Handler
    once: bool = False


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class EventBus:
    """
    Dispatches named events to subscribed handlers.

    emit() returns immediately; dispatch runs as a task on the running event
    loop (or inline when there is no loop). Handlers of one event run
    sequentially in subscription order. A failing handler is logged and
    re-routed to the reserved ``error`` event; it never reaches the emitter.
    """

    def __init__(self):
        self._handlers: dict[str, list[_Subscription]] = {}
        self._middlewares: list[Middleware] = []
        self._pending: set[asyncio.Task] = set()
        self.on(Events.ERROR, self._log_error_event)

    def use(self, middleware: Middleware) -> None:
        """Append a middleware: fn(event_name, payload, call_next)"""
        self._middlewares.append(middleware)

    def on(self, event_name: str, handler: Handler, once: bool = False) -> Callable[[], None]:
        """Subscribe a handler. Returns a callable that unsubscribes it."""
        subscription = _Subscription(handler=handler, once=once)
        self._handlers.setdefault(event_name, []).append(subscription)

        def unsubscribe() -> None:
            self._remove(event_name, subscription)

        return unsubscribe

    def once(self, event_name: str, handler: Handler) -> Callable[[], None]:
        return self.on(event_name, handler, once=True)

    def off(self, event_name: Optional[str] = None) -> None:
        """Remove all handlers for an event, or every handler when no name is given"""
        if event_name is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_name, None)

    def listener_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, []))

    def event_names(self) -> list[str]:
        return [name for name, subscriptions in self._handlers.items() if subscriptions]

    def emit(
        self,
        event_name: str,
        payload: Union[dict[str, Any], BaseModel, None] = None,
        skip_validation: bool = False,
    ) -> None:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump()
        payload = dict(payload or {})

        if not skip_validation:
            missing = validate_event_payload(event_name, payload)
            if missing:
                logger.warning(f"⚠️ Event {event_name} validation failed - missing fields: {', '.join(missing)}")

        logger.debug(f"📣 Emitting event: {event_name}")

        # Snapshot at emit time; once-handlers are consumed here so a second emit can't reach them
        subscriptions = list(self._handlers.get(event_name, []))
        for subscription in subscriptions:
            if subscription.once:
                self._remove(event_name, subscription)

        dispatch = self._dispatch(event_name, payload, subscriptions)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(dispatch)
            return

        task = loop.create_task(dispatch)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight dispatches, including events emitted by handlers while draining"""

        async def _wait_all():
            while self._pending:
                await asyncio.gather(*list(self._pending), return_exceptions=True)

        if timeout is None:
            await _wait_all()
        else:
            try:
                await asyncio.wait_for(_wait_all(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"⏰ Event bus drain timed out with {len(self._pending)} dispatches in flight")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def _dispatch(self, event_name: str, payload: dict[str, Any], subscriptions: list[_Subscription]) -> None:
        index = 0

        async def call_next() -> None:
            nonlocal index
            if index < len(self._middlewares):
                middleware = self._middlewares[index]
                index += 1
                await _maybe_await(middleware(event_name, payload, call_next))
                return

            for subscription in subscriptions:
                await self._invoke(event_name, subscription.handler, payload)

        try:
            await call_next()
        except Exception as e:
            logger.error(f"❌ Event middleware error for {event_name}: {e}", exc_info=True)

    async def _invoke(self, event_name: str, handler: Handler, payload: dict[str, Any]) -> None:
        try:
            await _maybe_await(handler(payload))
        except Exception as e:
            logger.error(
                f"❌ Event handler error for {event_name} ({getattr(handler, '__qualname__', handler)}): {e} "
                f"- payload: {payload}",
                exc_info=True,
            )
            if event_name != Events.ERROR:
                self.emit(
                    Events.ERROR,
                    {"event_name": event_name, "error": e, "payload": payload},
                    skip_validation=True,
                )

    def _remove(self, event_name: str, subscription: _Subscription) -> None:
        subscriptions = self._handlers.get(event_name)
        if subscriptions and subscription in subscriptions:
            subscriptions.remove(subscription)

    @staticmethod
    def _log_error_event(payload: dict[str, Any]) -> None:
        logger.debug(f"Event bus error event received for {payload.get('event_name')}: {payload.get('error')}")

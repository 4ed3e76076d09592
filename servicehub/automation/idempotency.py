"""
Idempotency guard for automation side effects.

Check-then-act runs under a per-key asyncio lock so two deliveries of the same
event in this process can't both pass the check. Across processes the stored
history (integration logs, active alerts) is the guard.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

from sqlalchemy.orm import Session

from ..shared.time import utcnow
from .repository import AutomationRepository


class IdempotencyGuard:
    def __init__(self, window_seconds: int = 300):
        self.window = timedelta(seconds=window_seconds)
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    def window_start(self) -> datetime:
        return utcnow() - self.window

    def notification_already_sent(
        self,
        db: Session,
        workspace_id: str,
        message_type: str,
        recipient: str,
        entity_id: Optional[str] = None,
    ) -> bool:
        return (
            AutomationRepository.find_recent_notification(
                db, workspace_id, message_type, recipient, entity_id, self.window_start()
            )
            is not None
        )

    @staticmethod
    def alert_already_active(db: Session, workspace_id: str, alert_type: str, subject_id: str) -> bool:
        return AutomationRepository.find_active_alert(db, workspace_id, alert_type, subject_id) is not None

    @staticmethod
    def notification_key(workspace_id: str, message_type: str, recipient: str, entity_id: Optional[str]) -> str:
        return f"notify:{workspace_id}:{message_type}:{recipient}:{entity_id or '-'}"

    @staticmethod
    def alert_key(workspace_id: str, alert_type: str, subject_id: str) -> str:
        return f"alert:{workspace_id}:{alert_type}:{subject_id}"

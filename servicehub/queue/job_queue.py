"""
Job Queue
Best-effort facade over a QueueBackend. Every operation degrades to a
logged no-op when the broker is unavailable; callers never see an exception.
"""

import logging
from datetime import timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from .backend import QueueBackend, QueueUnavailableError
from .jobs import AutomationJob, JobContext, JobHandle, UnknownJobTypeError

logger = logging.getLogger(__name__)

Processor = Callable[[JobContext], Awaitable[Any]]


def _key(name) -> str:
    return name.value if isinstance(name, Enum) else str(name)


def _as_timedelta(delay: Union[timedelta, float, int, None]) -> Optional[timedelta]:
    if delay is None:
        return None
    if not isinstance(delay, timedelta):
        delay = timedelta(seconds=delay)
    return delay if delay > timedelta(0) else None


class JobQueue:
    def __init__(self, backend: Optional[QueueBackend], concurrency: int = 5):
        self.backend = backend
        self.concurrency = concurrency
        self._processors: dict[str, dict[str, Processor]] = {}
        self._consuming: set[str] = set()
        self._stats: dict[str, dict[str, int]] = {}
        self._closed = False

    @property
    def enabled(self) -> bool:
        return self.backend is not None and not self._closed

    async def add_job(
        self,
        queue_name,
        job_type,
        data: dict[str, Any],
        delay: Union[timedelta, float, int, None] = None,
        job_identity: Optional[str] = None,
    ) -> Optional[JobHandle]:
        """
        Enqueue a job.

        Returns None when the job could not be scheduled (no broker, broker down,
        queue closed). When job_identity already exists, returns the existing
        job's handle with duplicate=True instead of enqueuing again.
        """
        if not self.enabled:
            logger.warning(f"⚠️ Cannot add {_key(job_type)} job - automation queue unavailable")
            return None

        job = AutomationJob(
            queue_name=queue_name,
            job_type=job_type,
            data=data,
            delay=_as_timedelta(delay),
            identity=job_identity,
        )

        try:
            handle = await self.backend.enqueue(job)
        except QueueUnavailableError as e:
            logger.warning(f"⚠️ Cannot add {job.job_type} job - queue unavailable: {e}")
            return None
        except Exception as e:
            logger.error(f"❌ Failed to add {job.job_type} job to {job.queue_name}: {e}", exc_info=True)
            return None

        if handle.duplicate:
            logger.info(f"⏭️ Job {job.job_type} with identity {job_identity} already queued - not enqueued again")
        else:
            delay_info = f" (delay: {job.delay})" if job.delay else ""
            logger.info(f"📅 Added {job.job_type} job to {job.queue_name} queue{delay_info}")
        return handle

    def register_processors(self, queue_name, processors: dict) -> None:
        """Attach processors without starting a consumer (used by a standalone worker process)"""
        queue_key = _key(queue_name)
        self._processors[queue_key] = {_key(job_type): fn for job_type, fn in processors.items()}
        self._stats.setdefault(queue_key, {"completed": 0, "failed": 0, "dropped": 0})

    async def register_worker(self, queue_name, processors: dict) -> bool:
        """Attach processors and start one consumer for the queue. Returns False if it could not start."""
        queue_key = _key(queue_name)
        self.register_processors(queue_key, processors)

        if queue_key in self._consuming:
            logger.warning(f"⚠️ Worker for queue {queue_key} already registered")
            return True

        if not self.enabled:
            logger.warning(f"⚠️ Cannot start {queue_key} worker - automation queue unavailable")
            return False

        async def dispatch(job_type: str, data: dict[str, Any], meta: dict[str, Any]) -> Any:
            return await self.dispatch(queue_key, job_type, data, meta)

        try:
            await self.backend.start_consumer(queue_key, dispatch, self.concurrency)
        except QueueUnavailableError as e:
            logger.warning(f"⚠️ Cannot start {queue_key} worker - queue unavailable: {e}")
            return False

        self._consuming.add(queue_key)
        return True

    async def dispatch(self, queue_name, job_type: str, data: dict[str, Any], meta: Optional[dict] = None) -> Any:
        """Run one job through its processor. A processor error marks the job failed and is re-raised."""
        queue_key = _key(queue_name)
        meta = meta or {}
        stats = self._stats.setdefault(queue_key, {"completed": 0, "failed": 0, "dropped": 0})
        job = JobContext(
            job_id=meta.get("job_id") or "",
            queue_name=queue_key,
            job_type=job_type,
            data=data,
            attempt=meta.get("job_try") or 1,
        )

        processor = self._processors.get(queue_key, {}).get(job_type)
        if processor is None:
            # Not retried: no amount of retrying will make an unknown type processable
            stats["dropped"] += 1
            logger.error(f"❌ Dropping job {job.job_id}: {UnknownJobTypeError(job_type)}")
            return None

        logger.info(f"⚙️ Processing {job_type} job {job.job_id}")
        try:
            result = await processor(job)
        except Exception as e:
            stats["failed"] += 1
            logger.error(f"❌ Job {job.job_id} ({job_type}) failed: {e}", exc_info=True)
            raise

        stats["completed"] += 1
        logger.info(f"✅ Job {job.job_id} ({job_type}) completed")
        return result

    async def cancel_by_correlation_key(self, queue_name, key_name: str, key_value: Any, job_type=None) -> int:
        """
        Remove every delayed job whose data[key_name] equals key_value
        (optionally only jobs of one type).

        Linear scan of the delayed set. Jobs already picked up by a worker
        are not affected. Returns the number removed (0 when unavailable).
        """
        if not self.enabled:
            return 0

        queue_key = _key(queue_name)
        try:
            delayed = await self.backend.list_delayed(queue_key)
            cancelled = 0
            for job in delayed:
                if job.data.get(key_name) != key_value:
                    continue
                if job_type is not None and job.job_type != _key(job_type):
                    continue
                if await self.backend.remove(queue_key, job.job_id):
                    cancelled += 1
        except QueueUnavailableError as e:
            logger.warning(f"⚠️ Cannot cancel jobs by {key_name} - queue unavailable: {e}")
            return 0
        except Exception as e:
            logger.error(f"❌ Error cancelling jobs by {key_name}={key_value}: {e}", exc_info=True)
            return 0

        if cancelled:
            logger.info(f"🚫 Cancelled {cancelled} {queue_key} jobs for {key_name} {key_value}")
        return cancelled

    async def get_job_counts(self, queue_name) -> Optional[dict[str, Any]]:
        if not self.enabled:
            return None

        queue_key = _key(queue_name)
        try:
            counts = await self.backend.job_counts(queue_key)
        except QueueUnavailableError:
            return None
        except Exception as e:
            logger.error(f"❌ Error getting job counts for {queue_key}: {e}")
            return None

        counts["processed_here"] = dict(self._stats.get(queue_key, {}))
        return counts

    async def close(self, grace_period: float = 10.0) -> None:
        """Stop accepting jobs, then shut the backend down"""
        if self._closed:
            return
        self._closed = True
        if self.backend is not None:
            try:
                await self.backend.close(grace_period=grace_period)
            except Exception as e:
                logger.warning(f"⚠️ Error closing job queue: {e}")
        logger.info("Job queue closed")

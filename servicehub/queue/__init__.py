from .backend import ArqQueueBackend, QueueBackend, QueueUnavailableError, get_redis_settings
from .job_queue import JobQueue
from .jobs import JobContext, JobHandle, JobType, QueueName, QueuedJob, build_job_identity
from .scheduler import AutomationScheduler

__all__ = [
    "ArqQueueBackend",
    "AutomationScheduler",
    "JobContext",
    "JobHandle",
    "JobQueue",
    "JobType",
    "QueueBackend",
    "QueueName",
    "QueueUnavailableError",
    "QueuedJob",
    "build_job_identity",
    "get_redis_settings",
]

"""
ARQ Background Worker for automation jobs
Run as a separate process: arq servicehub.worker.WorkerSettings
(with AUTOMATION_RUN_WORKERS=false on the API so jobs are consumed here only)
"""

import logging

from arq.worker import func

from .automation import build_automation_context
from .config import (
    AUTOMATION_JOB_TIMEOUT,
    AUTOMATION_KEEP_RESULT_SECONDS,
    AUTOMATION_WORKER_CONCURRENCY,
    AutomationSettings,
)
from .database import SessionLocal, init_db
from .queue import QueueName
from .queue.backend import DISPATCH_FUNCTION, arq_queue_name, get_redis_settings

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:
    init_db()
    automation = build_automation_context(SessionLocal, AutomationSettings.from_env())
    # ARQ owns consumption in this process; the context only supplies processors and handlers
    await automation.start(consume=False)
    ctx["automation"] = automation
    logger.info("🚀 ARQ Worker: automation context ready")


async def shutdown(ctx: dict) -> None:
    automation = ctx.get("automation")
    if automation is not None:
        await automation.close()
    logger.info("👋 ARQ Worker: automation context closed")


async def dispatch_automation_job(ctx: dict, job_type: str, data: dict):
    """Route one automation job to its processor by job type"""
    automation = ctx["automation"]
    meta = {"job_id": ctx.get("job_id"), "job_try": ctx.get("job_try", 1)}
    logger.info(f"📋 Job {meta['job_id']}: {job_type}")
    result = await automation.queue.dispatch(QueueName.AUTOMATION, job_type, data, meta)
    # Handlers run as bus tasks; finish them before ARQ marks the job complete
    await automation.bus.drain(timeout=automation.settings.shutdown_grace_seconds)
    return result


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [func(dispatch_automation_job, name=DISPATCH_FUNCTION)]
    queue_name = arq_queue_name(QueueName.AUTOMATION.value)
    redis_settings = get_redis_settings()
    on_startup = startup
    on_shutdown = shutdown

    max_jobs = AUTOMATION_WORKER_CONCURRENCY
    job_timeout = AUTOMATION_JOB_TIMEOUT
    keep_result = AUTOMATION_KEEP_RESULT_SECONDS

    # Sends are not idempotent at the provider; retries happen inside the notification gateway
    max_tries = 1

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")

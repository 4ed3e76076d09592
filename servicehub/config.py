import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if ENVIRONMENT == "development" else "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./servicehub.db")

# CORS - comma separated origins allowed to call the API with credentials
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Integration credentials encryption key (generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())")
# Falls back to a key derived from SECRET_KEY
CREDENTIALS_ENCRYPTION_KEY = os.getenv("CREDENTIALS_ENCRYPTION_KEY")

# Resend Email Configuration (platform default for workspaces without their own key)
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "ServiceHub <noreply@servicehub.app>")

# Redis / ARQ broker
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

# Automation queue
# AUTOMATION_ENABLED=false runs the API with automation disabled (no broker connection attempted)
AUTOMATION_ENABLED = os.getenv("AUTOMATION_ENABLED", "true").lower() == "true"
# Run the automation consumer inside the API process. Set to false when running
# `arq servicehub.worker.WorkerSettings` as a separate process.
AUTOMATION_RUN_WORKERS = os.getenv("AUTOMATION_RUN_WORKERS", "true").lower() == "true"
AUTOMATION_WORKER_CONCURRENCY = int(os.getenv("AUTOMATION_WORKER_CONCURRENCY", "5"))
AUTOMATION_JOB_TIMEOUT = int(os.getenv("AUTOMATION_JOB_TIMEOUT", "300"))
AUTOMATION_KEEP_RESULT_SECONDS = int(os.getenv("AUTOMATION_KEEP_RESULT_SECONDS", "3600"))
AUTOMATION_SHUTDOWN_GRACE_SECONDS = float(os.getenv("AUTOMATION_SHUTDOWN_GRACE_SECONDS", "10"))
QUEUE_CONNECT_TIMEOUT = float(os.getenv("QUEUE_CONNECT_TIMEOUT", "5"))
QUEUE_RECONNECT_INTERVAL = float(os.getenv("QUEUE_RECONNECT_INTERVAL", "30"))

# Automation policy
AUTOMATION_DEDUP_WINDOW_SECONDS = int(os.getenv("AUTOMATION_DEDUP_WINDOW_SECONDS", "300"))
BOOKING_REMINDER_HOURS_BEFORE = int(os.getenv("BOOKING_REMINDER_HOURS_BEFORE", "24"))
FORM_REMINDER_DELAY_HOURS = int(os.getenv("FORM_REMINDER_DELAY_HOURS", "24"))
FORM_OVERDUE_DELAY_HOURS = int(os.getenv("FORM_OVERDUE_DELAY_HOURS", "48"))
# Off by default: a reminder already picked up by a worker still fires after a staff reply
REMINDER_SKIP_AFTER_STAFF_REPLY = os.getenv("REMINDER_SKIP_AFTER_STAFF_REPLY", "false").lower() == "true"

# Notification delivery
NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "3"))
NOTIFICATION_BACKOFF_SECONDS = float(os.getenv("NOTIFICATION_BACKOFF_SECONDS", "2"))


@dataclass
class AutomationSettings:
    """Policy knobs for the automation core, bundled so tests can override them"""

    enabled: bool = True
    run_workers: bool = True
    worker_concurrency: int = 5
    dedup_window_seconds: int = 300
    reminder_hours_before: int = 24
    form_reminder_delay_hours: int = 24
    form_overdue_delay_hours: int = 48
    reminder_skip_after_staff_reply: bool = False
    notification_max_attempts: int = 3
    notification_backoff_seconds: float = 2.0
    shutdown_grace_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "AutomationSettings":
        return cls(
            enabled=AUTOMATION_ENABLED,
            run_workers=AUTOMATION_RUN_WORKERS,
            worker_concurrency=AUTOMATION_WORKER_CONCURRENCY,
            dedup_window_seconds=AUTOMATION_DEDUP_WINDOW_SECONDS,
            reminder_hours_before=BOOKING_REMINDER_HOURS_BEFORE,
            form_reminder_delay_hours=FORM_REMINDER_DELAY_HOURS,
            form_overdue_delay_hours=FORM_OVERDUE_DELAY_HOURS,
            reminder_skip_after_staff_reply=REMINDER_SKIP_AFTER_STAFF_REPLY,
            notification_max_attempts=NOTIFICATION_MAX_ATTEMPTS,
            notification_backoff_seconds=NOTIFICATION_BACKOFF_SECONDS,
            shutdown_grace_seconds=AUTOMATION_SHUTDOWN_GRACE_SECONDS,
        )

"""
Celery application configuration.
"""

from datetime import timedelta
from celery import Celery
from celery.signals import worker_ready, worker_shutting_down
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)

# Create Celery instance
celery_app = Celery(
    "lendpush",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.tasks.notifications"]
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    # Solo pool keeps the rate limiter and scheduler state in one process
    worker_pool="solo",
    worker_prefetch_multiplier=1,
    task_acks_late=False,
    result_expires=3600,  # Results expire after 1 hour
)

celery_app.conf.task_routes = {
    "app.tasks.notifications.*": {"queue": "push"},
}

celery_app.conf.task_default_queue = "push"

# Stale ticks expire instead of piling up behind a slow cycle
celery_app.conf.beat_schedule = {
    "process-push-queue": {
        "task": "app.tasks.notifications.process_push_queue",
        "schedule": timedelta(seconds=settings.QUEUE_INTERVAL_SECONDS),
        "options": {"expires": settings.QUEUE_INTERVAL_SECONDS},
    },
    "generate-reminders": {
        "task": "app.tasks.notifications.generate_reminders",
        "schedule": timedelta(seconds=settings.REMINDER_INTERVAL_SECONDS),
        "options": {"expires": settings.REMINDER_INTERVAL_SECONDS},
    },
}


@worker_ready.connect
def start_health_server_on_ready(sender=None, **kwargs):
    """Serve health and readiness routes from inside the worker process."""
    from app.main import start_health_server
    start_health_server()


@worker_shutting_down.connect
def stop_admitting_cycles(sig=None, how=None, exitcode=None, **kwargs):
    from app.tasks.scheduler import scheduler
    logger.info(f"Worker shutting down ({sig}, {how})")
    scheduler.begin_shutdown()

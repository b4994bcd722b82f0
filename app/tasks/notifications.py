"""
Periodic push tasks.
Celery Beat fires them on fixed cadences; the scheduler adapter keeps
each job from overlapping with itself.
"""
import asyncio
from datetime import datetime
from typing import Iterable, Optional
from app.tasks.celery_app import celery_app
from app.tasks.scheduler import scheduler, PUSH_QUEUE_JOB, REMINDER_JOB
from app.core.config import settings
from app.core.database import SessionLocal
from app.core.rate_limiter import rate_limiter
from app.models.notification_models import ReminderKind
from app.repositories.notification_repo import NotificationQueueRepository
from app.repositories.device_repo import DeviceRegistryRepository
from app.repositories.loan_repo import LoanRepository
from app.schemas.push import BatchCycleResponse, ReminderCycleResponse
from app.services.batch_processor import PushQueueProcessor
from app.services.push_service import push_service
from app.services.reminder_service import ReminderService


def run_push_cycle() -> BatchCycleResponse:
    """Process one batch of the push queue."""
    db = SessionLocal()
    try:
        processor = PushQueueProcessor(
            queue_repo=NotificationQueueRepository(db),
            device_repo=DeviceRegistryRepository(db),
            transport=push_service,
            rate_limiter=rate_limiter
        )
        # run_cycle is async; run it in this sync task
        return asyncio.run(processor.run_cycle())
    finally:
        db.close()


def run_reminder_cycle(
    now: Optional[datetime] = None,
    kinds: Optional[Iterable[ReminderKind]] = None
) -> ReminderCycleResponse:
    """Enqueue the reminders due now (or the explicit kinds)."""
    db = SessionLocal()
    try:
        service = ReminderService(
            queue_repo=NotificationQueueRepository(db),
            loan_repo=LoanRepository(db, settings.OUTSTANDING_LOAN_STATUSES),
            device_repo=DeviceRegistryRepository(db)
        )
        return service.run_cycle(now=now, kinds=kinds)
    finally:
        db.close()


@celery_app.task(name="app.tasks.notifications.process_push_queue")
def process_push_queue():
    """Drain one batch of queued push notifications."""
    return scheduler.run(PUSH_QUEUE_JOB, run_push_cycle)


@celery_app.task(name="app.tasks.notifications.generate_reminders")
def generate_reminders():
    """Synthesize reminder notifications for the current hour."""
    return scheduler.run(REMINDER_JOB, run_reminder_cycle)

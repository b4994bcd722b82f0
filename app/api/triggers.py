from fastapi import APIRouter, Depends
from app.core.deps import verify_cron_secret
from app.models.notification_models import ReminderKind
from app.tasks.notifications import run_push_cycle, run_reminder_cycle
from app.tasks.scheduler import scheduler, PUSH_QUEUE_JOB, REMINDER_JOB

trigger_router = APIRouter(dependencies=[Depends(verify_cron_secret)])

DAILY_KINDS = [
    ReminderKind.OVERDUE_REMINDER,
    ReminderKind.DUE_SOON_REMINDER,
    ReminderKind.OFFICE_CLOSING,
]

# Sync handlers: FastAPI runs them in its threadpool, where the cycles can
# start their own event loop. Cron callers issue plain GETs.
TRIGGER_METHODS = ["GET", "POST"]

@trigger_router.api_route("/push/worker", methods=TRIGGER_METHODS)
def trigger_push_worker():
    """Run one push queue cycle now"""
    return scheduler.run(PUSH_QUEUE_JOB, run_push_cycle)

@trigger_router.api_route("/notifications/daily-notifications", methods=TRIGGER_METHODS)
def trigger_daily_notifications():
    """Enqueue overdue, due-soon and office-closing reminders now"""
    return scheduler.run(REMINDER_JOB, run_reminder_cycle, kinds=DAILY_KINDS)

@trigger_router.api_route("/notifications/good-morning", methods=TRIGGER_METHODS)
def trigger_good_morning():
    """Enqueue good-morning broadcasts now"""
    return scheduler.run(REMINDER_JOB, run_reminder_cycle, kinds=[ReminderKind.GOOD_MORNING])

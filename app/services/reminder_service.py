from typing import Callable, Dict, Iterable, List, Optional, Tuple
from datetime import datetime, date
import pytz
from app.core.config import settings
from app.core.logger import get_logger
from app.models.notification_models import NotificationStatus, ReminderKind
from app.repositories.notification_repo import NotificationQueueRepository
from app.repositories.loan_repo import LoanRepository
from app.repositories.device_repo import DeviceRegistryRepository
from app.schemas.push import QueueItemCreate, ReminderCycleResponse

# Initialize logger
logger = get_logger(__name__)

NOT_SCHEDULED = "no reminders scheduled for this hour"


def group_items_by_recipient(rows: Iterable[Tuple[int, str]]) -> Dict[int, List[str]]:
    """Collect distinct item names per user, keeping first-seen order."""
    grouped: Dict[int, Dict[str, None]] = {}
    for user_id, item_name in rows:
        if not item_name:
            continue
        grouped.setdefault(user_id, {})[item_name] = None
    return {user_id: list(names) for user_id, names in grouped.items()}


class ReminderService:
    """Synthesizes reminder notifications from loans and fixed daily broadcasts."""
    
    def __init__(
        self,
        queue_repo: NotificationQueueRepository,
        loan_repo: LoanRepository,
        device_repo: DeviceRegistryRepository,
        timezone: Optional[str] = None,
        max_retries: Optional[int] = None
    ):
        self.queue_repo = queue_repo
        self.loan_repo = loan_repo
        self.device_repo = device_repo
        self.tz = pytz.timezone(timezone or settings.TIMEZONE)
        self.max_retries = max_retries if max_retries is not None else settings.PUSH_MAX_RETRIES
        self.daily_hour = settings.DAILY_REMINDER_HOUR
        self.office_closing_hour = settings.OFFICE_CLOSING_HOUR
        self.good_morning_hour = settings.GOOD_MORNING_HOUR
        self.due_soon_days = settings.DUE_SOON_DAYS
    
    def local_now(self, now: Optional[datetime] = None) -> datetime:
        """Convert a timestamp (naive means UTC) to the configured local zone."""
        now = now or datetime.utcnow()
        if now.tzinfo is None:
            now = pytz.utc.localize(now)
        return now.astimezone(self.tz)
    
    def scheduled_kinds(self, local_now: datetime) -> List[ReminderKind]:
        """Reminder kinds due at this local hour."""
        kinds = []
        if local_now.hour == self.daily_hour:
            kinds += [ReminderKind.OVERDUE_REMINDER, ReminderKind.DUE_SOON_REMINDER]
        if local_now.hour == self.office_closing_hour:
            kinds.append(ReminderKind.OFFICE_CLOSING)
        if local_now.hour == self.good_morning_hour:
            kinds.append(ReminderKind.GOOD_MORNING)
        return kinds
    
    def run_cycle(
        self,
        now: Optional[datetime] = None,
        kinds: Optional[Iterable[ReminderKind]] = None
    ) -> ReminderCycleResponse:
        """
        Enqueue the reminders due at `now`.
        
        Each reminder kind runs independently; a failing source query is
        logged and reported without stopping the others.
        
        Args:
            now: Current timestamp (defaults to utcnow)
            kinds: Explicit kinds to run regardless of the hour
        """
        local_now = self.local_now(now)
        today = local_now.date()
        selected = list(kinds) if kinds is not None else self.scheduled_kinds(local_now)
        
        result = ReminderCycleResponse()
        if not selected:
            result.skipped_reason = NOT_SCHEDULED
            return result
        
        handlers: Dict[ReminderKind, Callable[[date], int]] = {
            ReminderKind.OVERDUE_REMINDER: self.enqueue_overdue_reminders,
            ReminderKind.DUE_SOON_REMINDER: self.enqueue_due_soon_reminders,
            ReminderKind.OFFICE_CLOSING: self.enqueue_office_closing,
            ReminderKind.GOOD_MORNING: self.enqueue_good_morning,
        }
        
        for kind in selected:
            try:
                result.enqueued[kind.value] = handlers[kind](today)
            except Exception as e:
                logger.error(f"Reminder task '{kind.value}' failed: {str(e)}")
                result.errors[kind.value] = str(e)
        
        logger.info(f"Reminder cycle at {local_now.isoformat()}: enqueued={result.enqueued} errors={list(result.errors)}")
        return result
    
    # Loan-based reminders
    def enqueue_overdue_reminders(self, today: date) -> int:
        grouped = group_items_by_recipient(self.loan_repo.overdue_loans(today))
        for user_id, items in grouped.items():
            self._enqueue(
                user_id,
                ReminderKind.OVERDUE_REMINDER,
                title="Overdue Equipment",
                body=f"Please return your overdue equipment: {', '.join(items)}",
                data={"items": items}
            )
        return len(grouped)
    
    def enqueue_due_soon_reminders(self, today: date) -> int:
        grouped = group_items_by_recipient(self.loan_repo.due_soon_loans(today, self.due_soon_days))
        for user_id, items in grouped.items():
            self._enqueue(
                user_id,
                ReminderKind.DUE_SOON_REMINDER,
                title="Equipment Due Soon",
                body=f"Due within {self.due_soon_days} days: {', '.join(items)}",
                data={"items": items}
            )
        return len(grouped)
    
    # Broadcasts
    def enqueue_office_closing(self, today: date) -> int:
        return self._broadcast(
            ReminderKind.OFFICE_CLOSING,
            title="Office Closing Reminder",
            body="Please return borrowed equipment before the office closes today."
        )
    
    def enqueue_good_morning(self, today: date) -> int:
        return self._broadcast(
            ReminderKind.GOOD_MORNING,
            title="Good Morning!",
            body="Have a great day! Check the app for available equipment."
        )
    
    def _broadcast(self, kind: ReminderKind, title: str, body: str) -> int:
        recipients = self.device_repo.active_recipient_ids()
        for user_id in recipients:
            self._enqueue(user_id, kind, title=title, body=body)
        return len(recipients)
    
    def _enqueue(self, user_id: int, kind: ReminderKind, title: str, body: str, data: Optional[dict] = None):
        item = QueueItemCreate(
            user_id=user_id,
            title=title,
            body=body,
            data={"type": kind.value, **(data or {})},
            notification_type=kind.value,
            max_retries=self.max_retries
        )
        self.queue_repo.insert({
            **item.model_dump(),
            "status": NotificationStatus.PENDING.value,
            "retry_count": 0,
        })

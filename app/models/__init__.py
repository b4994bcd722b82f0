# Import all models for SQLAlchemy to register them
from app.models.loan_models import User, Equipment, Loan, LoanStatus
from app.models.notification_models import (
    PushNotificationQueue, PushSubscription, NotificationStatus, ReminderKind
)

__all__ = [
    "User",
    "Equipment",
    "Loan",
    "LoanStatus",
    "PushNotificationQueue",
    "PushSubscription",
    "NotificationStatus",
    "ReminderKind",
]

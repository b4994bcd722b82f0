from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, JSON, Index, CheckConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from datetime import datetime
from typing import Optional, Dict, Any
from app.models.shared_models import BaseModel
import enum

class NotificationStatus(str, enum.Enum):
    """Lifecycle of a queued push notification."""
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"

class ReminderKind(str, enum.Enum):
    """Tags for notifications synthesized by the reminder generator."""
    OVERDUE_REMINDER = "overdue_reminder"
    DUE_SOON_REMINDER = "due_soon_reminder"
    OFFICE_CLOSING = "office_closing"
    GOOD_MORNING = "good_morning"

class PushNotificationQueue(BaseModel):
    """Durable queue of push notifications awaiting delivery."""
    __tablename__ = "push_notification_queue"
    
    # Recipient
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    
    # Content
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    notification_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    
    # Processing
    status: Mapped[str] = mapped_column(String(20), default=NotificationStatus.PENDING.value, nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    
    recipient = relationship("User")
    
    __table_args__ = (
        Index('idx_pushqueue_status_created', 'status', 'created_at'),
        Index('idx_pushqueue_user_id', 'user_id'),
        CheckConstraint("max_retries >= 1", name="ck_pushqueue_max_retries_positive"),
    )
    
    def __repr__(self):
        return f"<PushNotificationQueue(id={self.id}, user_id={self.user_id}, status='{self.status}')>"

class PushSubscription(BaseModel):
    """A browser/device push subscription registered by a user."""
    __tablename__ = "push_subscriptions"
    
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    # Serialized PushSubscription JSON as produced by the browser
    subscription: Mapped[str] = mapped_column(Text, nullable=False)
    
    user = relationship("User", back_populates="push_subscriptions")
    
    __table_args__ = (
        Index('idx_pushsubscription_user_id', 'user_id'),
    )
    
    def __repr__(self):
        return f"<PushSubscription(id={self.id}, user_id={self.user_id})>"

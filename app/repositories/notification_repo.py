from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from app.models.notification_models import PushNotificationQueue, NotificationStatus
from app.core.errors import QueueStoreError
from app.core.logger import get_logger

logger = get_logger(__name__)

class NotificationQueueRepository:
    """Repository for the push notification queue"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def select_pending(self, limit: int = 50) -> List[PushNotificationQueue]:
        """Get pending notifications, oldest first"""
        try:
            return self.db.query(PushNotificationQueue).filter(
                PushNotificationQueue.status == NotificationStatus.PENDING.value
            ).order_by(
                PushNotificationQueue.created_at.asc(),
                PushNotificationQueue.id.asc()
            ).limit(limit).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to fetch pending notifications", {"error": str(e)}) from e
    
    def update(self, queue_id: int, fields: Dict[str, Any]) -> Optional[PushNotificationQueue]:
        """Update fields of a queue item and commit"""
        try:
            queue_item = self.db.query(PushNotificationQueue).filter(
                PushNotificationQueue.id == queue_id
            ).first()
            
            if not queue_item:
                return None
            
            for field, value in fields.items():
                if isinstance(value, NotificationStatus):
                    value = value.value
                setattr(queue_item, field, value)
            
            self.db.commit()
            self.db.refresh(queue_item)
            return queue_item
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError(f"Failed to update notification {queue_id}", {"error": str(e)}) from e
    
    def insert(self, queue_data: Dict[str, Any]) -> PushNotificationQueue:
        """Create a new queue item"""
        try:
            queue_item = PushNotificationQueue(**queue_data)
            self.db.add(queue_item)
            self.db.commit()
            self.db.refresh(queue_item)
            return queue_item
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to enqueue notification", {"error": str(e)}) from e
    
    def count_by_status(self) -> Dict[str, int]:
        """Count queue items grouped by status"""
        try:
            rows = self.db.query(
                PushNotificationQueue.status,
                func.count(PushNotificationQueue.id)
            ).group_by(PushNotificationQueue.status).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to count queue items", {"error": str(e)}) from e
        
        counts = {status.value: 0 for status in NotificationStatus}
        counts.update({status: count for status, count in rows})
        return counts

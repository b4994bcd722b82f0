from typing import List, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from app.models.notification_models import PushSubscription
from app.models.loan_models import User
from app.schemas.push import DeviceSubscription, parse_subscription
from app.core.errors import QueueStoreError, InvalidSubscriptionError
from app.core.logger import get_logger

logger = get_logger(__name__)

class DeviceRegistryRepository:
    """Repository for registered push subscriptions"""
    
    def __init__(self, db: Session):
        self.db = db
    
    def select_by_recipient(self, user_id: int) -> Tuple[List[DeviceSubscription], List[str]]:
        """
        Get a user's subscriptions parsed into typed descriptors.
        
        Returns:
            (valid subscriptions, raw descriptors that failed to parse)
        """
        try:
            rows = self.db.query(PushSubscription).filter(
                PushSubscription.user_id == user_id
            ).order_by(PushSubscription.id.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError(f"Failed to fetch subscriptions for user {user_id}", {"error": str(e)}) from e
        
        subscriptions: List[DeviceSubscription] = []
        malformed: List[str] = []
        for row in rows:
            try:
                descriptor = parse_subscription(row.subscription)
            except InvalidSubscriptionError:
                logger.warning(f"Unparseable push subscription {row.id} for user {user_id}")
                malformed.append(row.subscription)
                continue
            subscriptions.append(DeviceSubscription(
                id=row.id,
                user_id=row.user_id,
                descriptor=row.subscription,
                subscription=descriptor
            ))
        return subscriptions, malformed
    
    def delete_by_descriptor(self, descriptor: str) -> int:
        """Delete every registry row holding exactly this descriptor"""
        try:
            deleted = self.db.query(PushSubscription).filter(
                PushSubscription.subscription == descriptor
            ).delete(synchronize_session=False)
            self.db.commit()
            return deleted
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to delete push subscription", {"error": str(e)}) from e
    
    def register(self, user_id: int, descriptor: str) -> PushSubscription:
        """Store a subscription, validating it first"""
        parse_subscription(descriptor)
        try:
            row = PushSubscription(user_id=user_id, subscription=descriptor)
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
            return row
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to store push subscription", {"error": str(e)}) from e
    
    def active_recipient_ids(self) -> List[int]:
        """Ids of active users holding at least one subscription"""
        try:
            rows = self.db.query(PushSubscription.user_id).join(
                User, User.id == PushSubscription.user_id
            ).filter(
                User.is_active.is_(True)
            ).distinct().order_by(PushSubscription.user_id.asc()).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise QueueStoreError("Failed to fetch active recipients", {"error": str(e)}) from e
        return [user_id for (user_id,) in rows]

"""
Push queue batch processor.

Drains pending queue items oldest first and drives each one through
pending -> processing -> {sent, pending (retry), failed}.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from app.core.config import settings
from app.core.errors import QueueStoreError
from app.core.logger import get_logger
from app.core.rate_limiter import RateLimiter
from app.models.notification_models import PushNotificationQueue, NotificationStatus
from app.repositories.notification_repo import NotificationQueueRepository
from app.repositories.device_repo import DeviceRegistryRepository
from app.schemas.push import BatchCycleResponse, DeviceSubscription, PushPayload
from app.services.push_service import WebPushTransport, DeliveryResult

logger = get_logger(__name__)

RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
QUEUE_UNAVAILABLE = "queue_unavailable"
NO_SUBSCRIPTIONS = "No push subscriptions registered for user"


@dataclass
class QueuedNotification:
    """Plain copy of a queue row, taken before any status update commits and expires the batch."""
    id: int
    user_id: int
    title: str
    body: str
    data: Dict[str, Any]
    retry_count: int
    max_retries: int

    @classmethod
    def from_record(cls, record: PushNotificationQueue) -> "QueuedNotification":
        return cls(
            id=record.id,
            user_id=record.user_id,
            title=record.title,
            body=record.body,
            data=dict(record.data or {}),
            retry_count=record.retry_count,
            max_retries=record.max_retries
        )

    def retries_exhausted(self, attempts: int) -> bool:
        """True once `attempts` has used up the item's retry budget."""
        return attempts >= self.max_retries


class PushQueueProcessor:
    """Processes one bounded batch of the push queue per cycle."""
    
    def __init__(
        self,
        queue_repo: NotificationQueueRepository,
        device_repo: DeviceRegistryRepository,
        transport: WebPushTransport,
        rate_limiter: RateLimiter,
        batch_limit: Optional[int] = None
    ):
        self.queue_repo = queue_repo
        self.device_repo = device_repo
        self.transport = transport
        self.rate_limiter = rate_limiter
        self.batch_limit = batch_limit or settings.PUSH_BATCH_LIMIT
    
    async def run_cycle(self) -> BatchCycleResponse:
        """Pull up to batch_limit pending items and process each independently."""
        if not self.rate_limiter.admit(self.batch_limit):
            return BatchCycleResponse(skipped_reason=RATE_LIMIT_EXCEEDED)
        
        try:
            records = [
                QueuedNotification.from_record(record)
                for record in self.queue_repo.select_pending(self.batch_limit)
            ]
        except QueueStoreError as e:
            logger.error(f"Could not fetch pending notifications: {e.message} {e.details}")
            return BatchCycleResponse(skipped_reason=QUEUE_UNAVAILABLE)
        
        if not records:
            logger.debug("No pending push notifications")
            return BatchCycleResponse()
        
        # Coarse queue depth, not a precise in-flight counter
        self.rate_limiter.set_estimate(len(records))
        
        result = BatchCycleResponse(processed=len(records))
        for record in records:
            outcome = await self.process_record(record)
            if outcome == NotificationStatus.SENT:
                result.sent += 1
            elif outcome == NotificationStatus.FAILED:
                result.failed += 1
            else:
                result.retried += 1
        
        self.rate_limiter.release(result.sent + result.failed)
        
        logger.info(
            f"Push cycle finished: processed={result.processed} sent={result.sent} "
            f"failed={result.failed} retried={result.retried}"
        )
        return result
    
    async def process_record(self, record: QueuedNotification) -> NotificationStatus:
        """
        Drive one queue item through a delivery attempt.

        Returns:
            The status the item was left in
        """
        record_id = record.id

        try:
            user_id = record.user_id
            retry_count = record.retry_count + 1

            # Mark in progress before any delivery so a crash leaves a visible, counted attempt
            self.queue_repo.update(record_id, {
                "status": NotificationStatus.PROCESSING,
                "retry_count": retry_count
            })
            payload = PushPayload(title=record.title, body=record.body, data=record.data)
            
            subscriptions, malformed = self.device_repo.select_by_recipient(user_id)
            for descriptor in malformed:
                self._prune_subscription(descriptor, "malformed descriptor")
            
            if not subscriptions:
                logger.warning(f"Notification {record_id}: user {user_id} has no push subscriptions")
                self._mark_failed(record_id, NO_SUBSCRIPTIONS)
                return NotificationStatus.FAILED
            
            delivered, errors = await self._fan_out(subscriptions, payload)
            
            if delivered:
                self.queue_repo.update(record_id, {
                    "status": NotificationStatus.SENT,
                    "sent_at": datetime.utcnow(),
                    "error_message": "; ".join(errors) or None
                })
                logger.info(f"Notification {record_id} sent to {delivered}/{len(subscriptions)} devices")
                return NotificationStatus.SENT
            
            error_message = "All deliveries failed: " + "; ".join(errors)
            if not record.retries_exhausted(retry_count):
                self.queue_repo.update(record_id, {
                    "status": NotificationStatus.PENDING,
                    "error_message": error_message
                })
                logger.warning(f"Notification {record_id} will retry ({retry_count}/{record.max_retries}): {error_message}")
                return NotificationStatus.PENDING
            
            self._mark_failed(record_id, error_message)
            return NotificationStatus.FAILED
        
        except Exception as e:
            logger.exception(f"Unexpected error processing notification {record_id}: {str(e)}")
            self._mark_failed(record_id, str(e) or e.__class__.__name__)
            return NotificationStatus.FAILED
    
    async def _fan_out(self, subscriptions: List[DeviceSubscription], payload: PushPayload):
        """Attempt every subscription; one failure never stops the others."""
        delivered = 0
        errors: List[str] = []
        
        for subscription in subscriptions:
            try:
                result = await self.transport.deliver(subscription.subscription, payload)
            except Exception as e:
                logger.error(f"Transport raised for {subscription.endpoint}: {str(e)}")
                result = DeliveryResult.transient(str(e))
            
            if result.success:
                delivered += 1
                continue
            
            errors.append(f"{subscription.endpoint}: {result.error}")
            if result.is_gone:
                self._prune_subscription(subscription.descriptor, result.error)
        
        return delivered, errors
    
    def _prune_subscription(self, descriptor: str, reason: Optional[str]):
        try:
            deleted = self.device_repo.delete_by_descriptor(descriptor)
            logger.info(f"Removed {deleted} invalid push subscription(s): {reason}")
        except QueueStoreError as e:
            logger.error(f"Could not remove invalid push subscription: {e.message}")
    
    def _mark_failed(self, record_id: int, error_message: str):
        try:
            self.queue_repo.update(record_id, {
                "status": NotificationStatus.FAILED,
                "error_message": error_message
            })
        except QueueStoreError as e:
            logger.error(f"Could not mark notification {record_id} failed: {e.message}")

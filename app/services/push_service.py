"""
Web Push (VAPID) delivery transport
"""
import enum
import json
from dataclasses import dataclass
from typing import Optional
from pybreaker import CircuitBreaker, CircuitBreakerError
from pywebpush import webpush, WebPushException
from app.core.config import settings
from app.core.errors import DeliveryError
from app.core.circuit_breaker import webpush_breaker
from app.core.logger import get_logger
from app.schemas.push import SubscriptionDescriptor, PushPayload

logger = get_logger(__name__)

GONE_STATUS_CODES = (404, 410)


class DeliveryFailureKind(str, enum.Enum):
    """Why a single delivery attempt failed."""
    GONE = "gone"  # subscription permanently invalid; prune it
    TRANSIENT = "transient"


@dataclass
class DeliveryResult:
    success: bool
    failure_kind: Optional[DeliveryFailureKind] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    retry_after: Optional[int] = None

    @property
    def is_gone(self) -> bool:
        return self.failure_kind == DeliveryFailureKind.GONE

    @classmethod
    def ok(cls, status_code: Optional[int] = None) -> "DeliveryResult":
        return cls(success=True, status_code=status_code)

    @classmethod
    def gone(cls, status_code: Optional[int], error: str) -> "DeliveryResult":
        return cls(False, DeliveryFailureKind.GONE, status_code, error)

    @classmethod
    def transient(cls, error: str, status_code: Optional[int] = None,
                  retry_after: Optional[int] = None) -> "DeliveryResult":
        return cls(False, DeliveryFailureKind.TRANSIENT, status_code, error, retry_after)


class WebPushTransport:
    """Sends VAPID-signed Web Push messages to browser subscriptions."""
    
    def __init__(
        self,
        vapid_private_key: Optional[str] = None,
        vapid_public_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        ttl: Optional[int] = None,
        breaker: Optional[CircuitBreaker] = None
    ):
        self.vapid_private_key = vapid_private_key if vapid_private_key is not None else settings.VAPID_PRIVATE_KEY
        self.vapid_public_key = vapid_public_key if vapid_public_key is not None else settings.VAPID_PUBLIC_KEY
        self.vapid_subject = vapid_subject or settings.VAPID_SUBJECT
        self.ttl = ttl if ttl is not None else settings.PUSH_TTL_SECONDS
        self.breaker = breaker or webpush_breaker
        if not self.is_available():
            logger.warning("VAPID keys not configured. Push notifications will fail until they are set.")
    
    def is_available(self) -> bool:
        """Check if push delivery is configured."""
        return bool(self.vapid_private_key and self.vapid_public_key)
    
    def _require_vapid(self):
        if not self.is_available():
            raise DeliveryError("VAPID keys not configured", {"subject": self.vapid_subject})
    
    def _send(self, subscription: SubscriptionDescriptor, data: str):
        return webpush(
            subscription_info=subscription.to_subscription_info(),
            data=data,
            vapid_private_key=self.vapid_private_key,
            vapid_claims={"sub": self.vapid_subject},
            ttl=self.ttl
        )
    
    async def deliver(self, subscription: SubscriptionDescriptor, payload: PushPayload) -> DeliveryResult:
        """
        Deliver one payload to one subscription.
        
        Args:
            subscription: Parsed subscription descriptor
            payload: Title, body and data for the service worker
            
        Returns:
            DeliveryResult; GONE means the subscription should be removed
        """
        try:
            self._require_vapid()
            response = self.breaker.call(self._send, subscription, json.dumps(payload.model_dump()))
            status_code = getattr(response, "status_code", None)
            logger.debug(f"Delivered push to {subscription.endpoint} ({status_code})")
            return DeliveryResult.ok(status_code)
        
        except DeliveryError as e:
            logger.error(f"Push transport unusable: {e.message}")
            return DeliveryResult.transient(e.message)
        
        except CircuitBreakerError as e:
            logger.warning(f"Web Push circuit open, skipping {subscription.endpoint}: {e}")
            return DeliveryResult.transient("Push service circuit open")
        
        except WebPushException as e:
            response = getattr(e, "response", None)
            status_code = getattr(response, "status_code", None)
            
            if status_code in GONE_STATUS_CODES:
                logger.info(f"Subscription gone ({status_code}): {subscription.endpoint}")
                return DeliveryResult.gone(status_code, f"Subscription expired or invalid ({status_code})")
            
            if status_code == 429:
                retry_after = response.headers.get("Retry-After", 60)
                try:
                    retry_after = int(retry_after)
                except (TypeError, ValueError):
                    retry_after = 60
                logger.warning(f"Push service rate limited {subscription.endpoint}, retry after {retry_after}s")
                return DeliveryResult.transient(f"Rate limited. Retry after {retry_after} seconds", status_code, retry_after)
            
            logger.error(f"Web Push error for {subscription.endpoint}: {str(e)}")
            return DeliveryResult.transient(str(e), status_code)

        except Exception as e:
            # Network errors from the HTTP client surface here
            logger.error(f"Unexpected error sending push to {subscription.endpoint}: {str(e)}")
            return DeliveryResult.transient(str(e))


# Global instance
push_service = WebPushTransport()

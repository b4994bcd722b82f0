from pydantic import BaseModel, Field, ValidationError, field_validator
from typing import Optional, Dict, Any, List
from app.core.errors import InvalidSubscriptionError


class WebPushKeys(BaseModel):
    """Encryption keys published by the browser's push subscription."""
    p256dh: str = Field(..., description="Client public key (base64url)")
    auth: str = Field(..., description="Client auth secret (base64url)")


class SubscriptionDescriptor(BaseModel):
    """Schema for a stored Web Push subscription descriptor."""
    endpoint: str = Field(..., description="Push service endpoint URL")
    keys: Optional[WebPushKeys] = None
    expiration_time: Optional[int] = Field(None, alias="expirationTime")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator('endpoint')
    @classmethod
    def validate_endpoint(cls, v):
        if not v or len(v.strip()) == 0:
            raise ValueError('Endpoint cannot be empty')
        return v.strip()

    def to_subscription_info(self) -> Dict[str, Any]:
        """Shape expected by pywebpush."""
        info: Dict[str, Any] = {"endpoint": self.endpoint}
        if self.keys:
            info["keys"] = self.keys.model_dump()
        return info


class DeviceSubscription(BaseModel):
    """A registry row: the raw descriptor as stored plus its parsed form."""
    id: Optional[int] = None
    user_id: int
    descriptor: str
    subscription: SubscriptionDescriptor

    @property
    def endpoint(self) -> str:
        return self.subscription.endpoint


def parse_subscription(raw: str) -> SubscriptionDescriptor:
    """Parse a serialized subscription, raising InvalidSubscriptionError on bad input."""
    try:
        return SubscriptionDescriptor.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidSubscriptionError(
            "Malformed push subscription descriptor",
            details={"errors": e.errors(include_url=False)}
        ) from e


class PushPayload(BaseModel):
    """Body delivered to every subscription of a recipient."""
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)


class QueueItemCreate(BaseModel):
    """Schema for enqueuing a push notification."""
    user_id: int
    title: str = Field(..., max_length=200)
    body: str
    data: Optional[Dict[str, Any]] = None
    notification_type: Optional[str] = None
    max_retries: int = Field(3, ge=1)


class BatchCycleResponse(BaseModel):
    """Schema returned by a queue processing cycle."""
    processed: int = 0
    sent: int = 0
    failed: int = 0
    retried: int = 0
    skipped_reason: Optional[str] = None


class ReminderCycleResponse(BaseModel):
    """Schema returned by a reminder generation cycle."""
    enqueued: Dict[str, int] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)
    skipped_reason: Optional[str] = None


class RateLimitSnapshot(BaseModel):
    """Read-only view of the batch rate limiter."""
    current_estimate: int
    ceiling: int
    batch_limit: int


class ReadinessResponse(BaseModel):
    """Schema for worker readiness reporting."""
    status: str
    accepting_work: bool
    rate_limit: RateLimitSnapshot
    last_results: Dict[str, Any] = Field(default_factory=dict)
    circuit_breakers: List[Dict[str, Any]] = Field(default_factory=list)

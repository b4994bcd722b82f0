import json
import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, import_models
from app.models.loan_models import User, Equipment, Loan, LoanStatus
from app.models.notification_models import PushNotificationQueue, PushSubscription, NotificationStatus
from app.schemas.push import DeviceSubscription, parse_subscription
from app.services.push_service import DeliveryResult

import_models()

# In-memory database shared across connections of one test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=test_engine
)

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"

# Test data factories
def subscription_json(endpoint: str) -> str:
    return json.dumps({
        "endpoint": endpoint,
        "expirationTime": None,
        "keys": {"p256dh": "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM", "auth": "tBHItJI5svbpez7KI4CCXg"}
    })

def make_device_subscription(endpoint: str, user_id: int = 1, sub_id: int = 1) -> DeviceSubscription:
    raw = subscription_json(endpoint)
    return DeviceSubscription(id=sub_id, user_id=user_id, descriptor=raw, subscription=parse_subscription(raw))

class FakeTransport:
    """Transport double returning a fixed result per endpoint."""
    
    def __init__(self, outcomes=None, default=None):
        self.outcomes = outcomes or {}
        self.default = default or DeliveryResult.ok(201)
        self.calls = []
    
    async def deliver(self, subscription, payload):
        self.calls.append((subscription.endpoint, payload))
        return self.outcomes.get(subscription.endpoint, self.default)

class DataFactory:
    """Creates persisted rows for repository and integration tests."""
    
    def __init__(self, db):
        self.db = db
    
    def user(self, name: str = "Test User", is_active: bool = True) -> User:
        user = User(name=name, is_active=is_active)
        self.db.add(user)
        self.db.commit()
        return user
    
    def equipment(self, name: str) -> Equipment:
        item = Equipment(name=name)
        self.db.add(item)
        self.db.commit()
        return item
    
    def loan(self, user: User, equipment: Equipment, due_date, status: str = LoanStatus.BORROWED.value) -> Loan:
        loan = Loan(user_id=user.id, equipment_id=equipment.id, due_date=due_date, status=status)
        self.db.add(loan)
        self.db.commit()
        return loan
    
    def subscription(self, user: User, endpoint: str) -> PushSubscription:
        row = PushSubscription(user_id=user.id, subscription=subscription_json(endpoint))
        self.db.add(row)
        self.db.commit()
        return row
    
    def queue_item(self, user: User, created_at: datetime = None, **kwargs) -> PushNotificationQueue:
        data = {
            "user_id": user.id,
            "title": "Hello",
            "body": "World",
            "status": NotificationStatus.PENDING.value,
            "retry_count": 0,
            "max_retries": 3,
        }
        data.update(kwargs)
        item = PushNotificationQueue(**data)
        if created_at:
            item.created_at = created_at
        self.db.add(item)
        self.db.commit()
        return item

@pytest.fixture
def factory(db_session):
    return DataFactory(db_session)

@pytest.fixture
def device_subscription():
    """Build a parsed DeviceSubscription for an endpoint."""
    return make_device_subscription

@pytest.fixture
def fake_transport():
    """Build a FakeTransport with per-endpoint outcomes."""
    return FakeTransport

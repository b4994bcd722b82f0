from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Service
    PROJECT_NAME: str = "LendPush Worker"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database Configuration (queue store, device registry, loan records)
    DATABASE_URL: str = "sqlite:///./lendpush.db"
    DB_CONNECTION_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600  # 1 hour

    # Celery Configuration
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # Batch processing
    PUSH_BATCH_LIMIT: int = 50
    PUSH_RATE_LIMIT_CEILING: int = 100
    PUSH_MAX_RETRIES: int = 3
    QUEUE_INTERVAL_SECONDS: int = 60
    REMINDER_INTERVAL_SECONDS: int = 3600

    # Reminder generation (local hours in TIMEZONE)
    TIMEZONE: str = "UTC"
    DAILY_REMINDER_HOUR: int = 8
    OFFICE_CLOSING_HOUR: int = 8
    GOOD_MORNING_HOUR: int = 9
    DUE_SOON_DAYS: int = 2
    OUTSTANDING_LOAN_STATUSES: Union[List[str], str] = ["borrowed", "overdue"]

    @field_validator("OUTSTANDING_LOAN_STATUSES", mode="before")
    @classmethod
    def assemble_outstanding_statuses(cls, v):
        if isinstance(v, str) and v:
            if not v.startswith("["):
                return [i.strip() for i in v.split(",") if i.strip()]
            else:
                import json
                return json.loads(v)
        elif isinstance(v, list):
            return v
        return []

    @field_validator("DAILY_REMINDER_HOUR", "OFFICE_CLOSING_HOUR", "GOOD_MORNING_HOUR")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("hour must be between 0 and 23")
        return v

    @field_validator("PUSH_MAX_RETRIES")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError("PUSH_MAX_RETRIES must allow at least one attempt")
        return v

    # Web Push (VAPID)
    VAPID_PRIVATE_KEY: Optional[str] = None
    VAPID_PUBLIC_KEY: Optional[str] = None
    VAPID_SUBJECT: str = "mailto:notifications@example.com"
    PUSH_TTL_SECONDS: int = 86400

    # Circuit Breaker Configuration
    CIRCUIT_BREAKER_ENABLED: bool = True
    CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT: int = 60

    # Health / manual triggers
    CRON_SECRET: Optional[str] = None
    HEALTH_HOST: str = "0.0.0.0"
    HEALTH_PORT: int = 3000
    SHUTDOWN_GRACE_SECONDS: int = 10

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "env_file_encoding": "utf-8",
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

settings = Settings()

def get_settings() -> Settings:
    """Get application settings instance"""
    return settings

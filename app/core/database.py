"""
Database configuration and dependencies.
This module provides the engine, session factory and declarative base
shared by the queue store, the device registry and the loan records.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings

# Create Base class for models
Base = declarative_base()

if "sqlite" in settings.DATABASE_URL:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=settings.DEBUG,
    )
else:
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={
            "application_name": "lendpush_worker",
            "connect_timeout": 10,
        },
        echo=settings.DEBUG,
        pool_size=settings.DB_CONNECTION_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True
    )

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

def get_db():
    """Get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def import_models():
    """Import all models to register them with SQLAlchemy"""
    from app.models import notification_models  # noqa: F401
    from app.models import loan_models  # noqa: F401

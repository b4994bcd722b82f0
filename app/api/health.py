from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.core.config import settings
from app.core.rate_limiter import rate_limiter
from app.core.circuit_breaker import CircuitBreakerManager
from app.repositories.notification_repo import NotificationQueueRepository
from app.schemas.push import ReadinessResponse, RateLimitSnapshot
from app.tasks.scheduler import scheduler
from datetime import datetime
import psutil
import os

health_router = APIRouter()

@health_router.get("")
async def health_check():
    """Basic health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.PROJECT_NAME,
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@health_router.get("/ready", response_model=ReadinessResponse)
async def readiness_check():
    """Rate limiter, scheduler and breaker state; read-only"""
    return ReadinessResponse(
        status="ready" if scheduler.accepting_work else "draining",
        accepting_work=scheduler.accepting_work,
        rate_limit=RateLimitSnapshot(**rate_limiter.snapshot()),
        last_results=scheduler.last_results,
        circuit_breakers=CircuitBreakerManager.get_status()
    )

@health_router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """Detailed health check with queue and system information"""
    queue_counts = None
    try:
        db.execute(text("SELECT 1"))
        queue_counts = NotificationQueueRepository(db).count_by_status()
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
    
    memory = psutil.virtual_memory()
    
    return {
        "status": "healthy" if db_status == "healthy" else "unhealthy",
        "timestamp": datetime.utcnow().isoformat(),
        "service": settings.PROJECT_NAME,
        "environment": settings.ENVIRONMENT,
        "checks": {
            "database": db_status,
            "queue": queue_counts,
            "rate_limit": rate_limiter.snapshot(),
            "memory": {
                "total": memory.total,
                "available": memory.available,
                "percent": memory.percent
            }
        },
        "process_id": os.getpid()
    }

@health_router.get("/live")
async def liveness_check():
    """Liveness check for Kubernetes/Docker"""
    return {"status": "alive"}

from fastapi import FastAPI
import threading
import uvicorn

from app.api.health import health_router
from app.api.triggers import trigger_router
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)

# Create FastAPI instance
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Push notification delivery and reminder worker",
    version="1.0.0",
)

# Include routers
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(trigger_router, prefix="/api", tags=["triggers"])

# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint"""
    return {
        "app_name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "health": "/health"
    }

_health_thread = None

def start_health_server() -> threading.Thread:
    """Serve this app from a daemon thread of the current (worker) process."""
    global _health_thread
    if _health_thread is not None and _health_thread.is_alive():
        return _health_thread
    
    config = uvicorn.Config(app, host=settings.HEALTH_HOST, port=settings.HEALTH_PORT, log_level="warning")
    server = uvicorn.Server(config)
    _health_thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    _health_thread.start()
    logger.info(f"Health server listening on {settings.HEALTH_HOST}:{settings.HEALTH_PORT}")
    return _health_thread

if __name__ == "__main__":
    uvicorn.run(app, host=settings.HEALTH_HOST, port=settings.HEALTH_PORT)

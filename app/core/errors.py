from typing import Any, Dict, Optional
from fastapi import HTTPException, status

class PushWorkerException(Exception):
    """Base exception for the push worker"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

class QueueStoreError(PushWorkerException):
    """Queue store, device registry or source table could not be reached or queried"""
    pass

class InvalidSubscriptionError(PushWorkerException):
    """Stored subscription descriptor could not be parsed"""
    pass

class DeliveryError(PushWorkerException):
    """Push transport is misconfigured or unusable"""
    pass

# HTTP Exception helpers
def http_401_unauthorized(message: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"}
    )

def http_503_service_unavailable(message: str = "Service unavailable") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=message
    )

"""
In-flight gate for the push queue processor.
Tracks a coarse estimate of queue items being worked on and refuses new
batch pulls once the estimate reaches the configured ceiling.
"""

import threading
from typing import Optional
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Process-local counter owned by the batch processor."""
    
    def __init__(self, ceiling: Optional[int] = None, batch_limit: Optional[int] = None):
        self.ceiling = ceiling if ceiling is not None else settings.PUSH_RATE_LIMIT_CEILING
        self.batch_limit = batch_limit if batch_limit is not None else settings.PUSH_BATCH_LIMIT
        self._estimate = 0
        self._lock = threading.Lock()
    
    @property
    def current_estimate(self) -> int:
        with self._lock:
            return self._estimate
    
    def admit(self, requested_batch_size: int) -> bool:
        """Return False when the in-flight estimate has reached the ceiling."""
        with self._lock:
            estimate = self._estimate
        allowed = estimate < self.ceiling
        if not allowed:
            logger.warning(
                f"Rate limit reached ({estimate}/{self.ceiling}), "
                f"refusing batch of {requested_batch_size}"
            )
        return allowed
    
    def set_estimate(self, queue_size: int):
        """Record the size of the batch just pulled as the in-flight estimate."""
        with self._lock:
            self._estimate = max(0, queue_size)
    
    def release(self, completed_count: int):
        """Subtract completed items from the estimate, never going below zero."""
        with self._lock:
            self._estimate = max(0, self._estimate - completed_count)
    
    def reset(self):
        with self._lock:
            self._estimate = 0
    
    def snapshot(self) -> dict:
        with self._lock:
            return {
                "current_estimate": self._estimate,
                "ceiling": self.ceiling,
                "batch_limit": self.batch_limit,
            }


# Global instance shared by the worker's tasks and its health routes
rate_limiter = RateLimiter()

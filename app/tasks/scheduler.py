"""
Scheduler adapter shared by the periodic Celery tasks and the manual trigger routes.

Serializes cycles per job, refuses new cycles once shutdown begins and keeps
the last result of every job for readiness reporting.
"""
import os
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)

PUSH_QUEUE_JOB = "push_queue"
REMINDER_JOB = "reminders"

CYCLE_IN_PROGRESS = "cycle_in_progress"
SHUTTING_DOWN = "shutting_down"


class SchedulerAdapter:
    """Runs job cycles one at a time per job name."""
    
    def __init__(
        self,
        grace_seconds: Optional[int] = None,
        exit_func: Callable[[int], Any] = os._exit
    ):
        self.grace_seconds = grace_seconds if grace_seconds is not None else settings.SHUTDOWN_GRACE_SECONDS
        self._exit_func = exit_func
        self._accepting = threading.Event()
        self._accepting.set()
        self._registry_lock = threading.Lock()
        self._job_locks: Dict[str, threading.Lock] = {}
        self._grace_timer: Optional[threading.Timer] = None
        self.last_results: Dict[str, Dict[str, Any]] = {}
    
    @property
    def accepting_work(self) -> bool:
        return self._accepting.is_set()
    
    def _lock_for(self, job_name: str) -> threading.Lock:
        with self._registry_lock:
            return self._job_locks.setdefault(job_name, threading.Lock())
    
    def run(self, job_name: str, cycle: Callable[..., Any], *args, **kwargs) -> Dict[str, Any]:
        """
        Run one cycle of a job unless shutting down or the job is already running.
        
        Returns:
            The cycle's result as a dict, or {"skipped_reason": ...}
        """
        if not self.accepting_work:
            logger.info(f"Skipping {job_name} cycle: worker is shutting down")
            return {"skipped_reason": SHUTTING_DOWN}
        
        lock = self._lock_for(job_name)
        if not lock.acquire(blocking=False):
            logger.warning(f"Skipping {job_name} cycle: previous cycle still running")
            return {"skipped_reason": CYCLE_IN_PROGRESS}
        
        started_at = datetime.utcnow()
        try:
            result = cycle(*args, **kwargs)
            payload = result.model_dump() if hasattr(result, "model_dump") else dict(result or {})
            self.last_results[job_name] = {
                "started_at": started_at.isoformat(),
                "finished_at": datetime.utcnow().isoformat(),
                "result": payload
            }
            return payload
        except Exception as e:
            logger.exception(f"{job_name} cycle crashed: {str(e)}")
            self.last_results[job_name] = {
                "started_at": started_at.isoformat(),
                "finished_at": datetime.utcnow().isoformat(),
                "error": str(e)
            }
            raise
        finally:
            lock.release()
    
    def is_running(self, job_name: str) -> bool:
        return self._lock_for(job_name).locked()
    
    def begin_shutdown(self):
        """Stop admitting cycles and end the process once the grace window passes."""
        if not self.accepting_work:
            return
        self._accepting.clear()
        logger.info(f"Shutdown requested; exiting in {self.grace_seconds}s at the latest")
        self._grace_timer = threading.Timer(self.grace_seconds, self._terminate)
        self._grace_timer.daemon = True
        self._grace_timer.start()
    
    def _terminate(self):
        running = [name for name, lock in self._job_locks.items() if lock.locked()]
        if running:
            logger.warning(f"Grace window elapsed with cycles still running: {running}")
        logger.info("Terminating worker process")
        self._exit_func(0)


# Global instance
scheduler = SchedulerAdapter()

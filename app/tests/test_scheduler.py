import threading
import pytest
from unittest.mock import Mock
from app.schemas.push import BatchCycleResponse
from app.tasks.scheduler import SchedulerAdapter, CYCLE_IN_PROGRESS, SHUTTING_DOWN


class TestSchedulerAdapter:
    """Test cases for SchedulerAdapter."""
    
    @pytest.fixture
    def exit_func(self):
        return Mock()
    
    @pytest.fixture
    def adapter(self, exit_func):
        return SchedulerAdapter(grace_seconds=0.05, exit_func=exit_func)
    
    def test_runs_cycle_and_records_result(self, adapter):
        result = adapter.run("push_queue", lambda: BatchCycleResponse(processed=2, sent=2))
        
        assert result["processed"] == 2
        assert adapter.last_results["push_queue"]["result"]["sent"] == 2
    
    def test_overlapping_cycle_of_same_job_is_skipped(self, adapter):
        started = threading.Event()
        release = threading.Event()
        inner_results = []
        
        def slow_cycle():
            started.set()
            release.wait(timeout=5)
            return BatchCycleResponse()
        
        worker = threading.Thread(target=lambda: adapter.run("push_queue", slow_cycle))
        worker.start()
        started.wait(timeout=5)
        
        inner_results.append(adapter.run("push_queue", lambda: BatchCycleResponse(processed=1)))
        # a different job is not blocked
        inner_results.append(adapter.run("reminders", lambda: BatchCycleResponse(processed=1)))
        
        release.set()
        worker.join(timeout=5)
        
        assert inner_results[0] == {"skipped_reason": CYCLE_IN_PROGRESS}
        assert inner_results[1]["processed"] == 1
        assert not adapter.is_running("push_queue")
    
    def test_crashed_cycle_releases_lock_and_records_error(self, adapter):
        def broken():
            raise RuntimeError("boom")
        
        with pytest.raises(RuntimeError):
            adapter.run("push_queue", broken)
        
        assert adapter.last_results["push_queue"]["error"] == "boom"
        assert adapter.run("push_queue", lambda: BatchCycleResponse())["processed"] == 0
    
    def test_shutdown_refuses_new_cycles_and_exits_after_grace(self, adapter, exit_func):
        cycle = Mock(return_value=BatchCycleResponse())
        finished = threading.Event()
        exit_func.side_effect = lambda code: finished.set()
        
        adapter.begin_shutdown()
        result = adapter.run("push_queue", cycle)
        
        assert result == {"skipped_reason": SHUTTING_DOWN}
        cycle.assert_not_called()
        assert adapter.accepting_work is False
        assert finished.wait(timeout=2)
        exit_func.assert_called_once_with(0)
    
    def test_begin_shutdown_is_idempotent(self, adapter, exit_func):
        finished = threading.Event()
        exit_func.side_effect = lambda code: finished.set()
        
        adapter.begin_shutdown()
        adapter.begin_shutdown()
        
        assert finished.wait(timeout=2)
        exit_func.assert_called_once()

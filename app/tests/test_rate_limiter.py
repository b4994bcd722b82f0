import threading
from app.core.rate_limiter import RateLimiter


class TestRateLimiter:
    """Test cases for the queue rate limiter."""
    
    def test_admits_below_ceiling(self):
        limiter = RateLimiter(ceiling=10, batch_limit=5)
        limiter.set_estimate(9)
        assert limiter.admit(5) is True
    
    def test_refuses_at_or_above_ceiling(self):
        limiter = RateLimiter(ceiling=10, batch_limit=5)
        limiter.set_estimate(10)
        assert limiter.admit(5) is False
        limiter.set_estimate(25)
        assert limiter.admit(1) is False
    
    def test_release_decrements_exactly(self):
        limiter = RateLimiter(ceiling=10)
        limiter.set_estimate(7)
        limiter.release(3)
        assert limiter.current_estimate == 4
    
    def test_release_floors_at_zero(self):
        limiter = RateLimiter(ceiling=10)
        limiter.set_estimate(2)
        limiter.release(5)
        assert limiter.current_estimate == 0
        assert limiter.admit(1) is True
    
    def test_zero_ceiling_never_admits(self):
        limiter = RateLimiter(ceiling=0)
        assert limiter.admit(1) is False
    
    def test_snapshot(self):
        limiter = RateLimiter(ceiling=100, batch_limit=50)
        limiter.set_estimate(12)
        assert limiter.snapshot() == {"current_estimate": 12, "ceiling": 100, "batch_limit": 50}
    
    def test_concurrent_releases_are_consistent(self):
        limiter = RateLimiter(ceiling=10000)
        limiter.set_estimate(1000)
        
        threads = [threading.Thread(target=lambda: [limiter.release(1) for _ in range(100)]) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        
        assert limiter.current_estimate == 0

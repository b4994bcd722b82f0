"""
Circuit breaker for the Web Push transport.
Stops hammering push services that keep failing and lets the retry policy
of the queue absorb the outage.
"""

import sys
from typing import Any, Dict, List, Optional
from pybreaker import CircuitBreaker
from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger(__name__)


def _is_gone_response(exc: BaseException) -> bool:
    """A 404/410 from the push service is a dead subscription, not an outage."""
    response = getattr(exc, "response", None)
    return response is not None and getattr(response, "status_code", None) in (404, 410)


class CircuitBreakerConfig:
    """Configuration for the breakers used by the worker."""
    
    DEFAULT_FAILURE_THRESHOLD = settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD
    DEFAULT_RECOVERY_TIMEOUT = settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT
    
    WEBPUSH_CONFIG = {
        'fail_max': settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
        'reset_timeout': settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
        'exclude': [ValueError, _is_gone_response]
    }

# Circuit breaker instances
_circuit_breakers: Dict[str, CircuitBreaker] = {}

def get_circuit_breaker(name: str, config: Optional[Dict] = None) -> CircuitBreaker:
    """
    Get or create a circuit breaker instance.
    
    Args:
        name: Unique name for the circuit breaker
        config: Configuration dictionary for the circuit breaker
    
    Returns:
        CircuitBreaker instance
    """
    if name not in _circuit_breakers:
        if config is None:
            config = {
                'fail_max': CircuitBreakerConfig.DEFAULT_FAILURE_THRESHOLD,
                'reset_timeout': CircuitBreakerConfig.DEFAULT_RECOVERY_TIMEOUT,
            }
        if not settings.CIRCUIT_BREAKER_ENABLED:
            # Never opens
            config = {**config, 'fail_max': sys.maxsize}
        
        _circuit_breakers[name] = CircuitBreaker(name=name, **config)
        logger.info(f"Created circuit breaker '{name}' (fail_max={config['fail_max']}, reset_timeout={config['reset_timeout']})")
    
    return _circuit_breakers[name]

webpush_breaker = get_circuit_breaker('webpush', CircuitBreakerConfig.WEBPUSH_CONFIG)

class CircuitBreakerManager:
    """Manager for monitoring and controlling circuit breakers."""
    
    @staticmethod
    def get_status() -> List[Dict[str, Any]]:
        """Get status of all circuit breakers."""
        return [
            {
                'name': name,
                'state': breaker.current_state,
                'fail_counter': breaker.fail_counter,
                'failure_threshold': breaker.fail_max,
                'recovery_timeout': breaker.reset_timeout
            }
            for name, breaker in _circuit_breakers.items()
        ]

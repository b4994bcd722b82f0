import json
import pytest
from unittest.mock import Mock, patch
from pybreaker import CircuitBreaker
from pywebpush import WebPushException
from app.core.errors import DeliveryError
from app.schemas.push import PushPayload, parse_subscription
from app.services.push_service import WebPushTransport, DeliveryFailureKind


def push_error(status_code, headers=None):
    response = Mock()
    response.status_code = status_code
    response.headers = headers or {}
    return WebPushException(f"Push failed: {status_code}", response=response)


class TestWebPushTransport:
    """Test cases for WebPushTransport."""
    
    @pytest.fixture
    def breaker(self):
        from app.core.circuit_breaker import CircuitBreakerConfig
        return CircuitBreaker(fail_max=2, reset_timeout=60, exclude=CircuitBreakerConfig.WEBPUSH_CONFIG['exclude'])
    
    @pytest.fixture
    def transport(self, breaker):
        return WebPushTransport(
            vapid_private_key="test-private-key",
            vapid_public_key="test-public-key",
            vapid_subject="mailto:ops@example.com",
            ttl=3600,
            breaker=breaker
        )
    
    @pytest.fixture
    def subscription(self):
        return parse_subscription(json.dumps({
            "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
            "keys": {"p256dh": "key", "auth": "secret"}
        }))
    
    @pytest.fixture
    def payload(self):
        return PushPayload(title="Good Morning!", body="Have a great day!", data={"type": "good_morning"})
    
    @pytest.mark.asyncio
    async def test_successful_delivery(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush") as mock_webpush:
            mock_webpush.return_value = Mock(status_code=201)
            
            result = await transport.deliver(subscription, payload)
        
        assert result.success is True
        assert result.status_code == 201
        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["subscription_info"] == {
            "endpoint": "https://fcm.googleapis.com/fcm/send/abc",
            "keys": {"p256dh": "key", "auth": "secret"}
        }
        assert json.loads(kwargs["data"]) == {"title": "Good Morning!", "body": "Have a great day!", "data": {"type": "good_morning"}}
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.com"}
        assert kwargs["ttl"] == 3600
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [404, 410])
    async def test_gone_subscription(self, transport, subscription, payload, status_code):
        with patch("app.services.push_service.webpush", side_effect=push_error(status_code)):
            result = await transport.deliver(subscription, payload)
        
        assert result.success is False
        assert result.failure_kind == DeliveryFailureKind.GONE
        assert result.is_gone
        assert result.status_code == status_code
    
    @pytest.mark.asyncio
    async def test_rate_limited_is_transient_with_retry_after(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush", side_effect=push_error(429, {"Retry-After": "120"})):
            result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        assert result.retry_after == 120
    
    @pytest.mark.asyncio
    async def test_server_error_is_transient(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush", side_effect=push_error(500)):
            result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        assert not result.is_gone
    
    @pytest.mark.asyncio
    async def test_network_error_is_transient(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush", side_effect=ConnectionError("reset by peer")):
            result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        assert "reset by peer" in result.error
    
    @pytest.mark.asyncio
    async def test_missing_vapid_key_fails_without_sending(self, breaker, subscription, payload):
        transport = WebPushTransport(vapid_private_key="", vapid_public_key="test-public-key", breaker=breaker)
        
        with patch("app.services.push_service.webpush") as mock_webpush:
            result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        assert result.error == "VAPID keys not configured"
        mock_webpush.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_missing_public_key_is_a_configuration_error(self, breaker, subscription, payload):
        transport = WebPushTransport(vapid_private_key="test-private-key", vapid_public_key="", breaker=breaker)
        
        assert transport.is_available() is False
        with pytest.raises(DeliveryError):
            transport._require_vapid()
        
        with patch("app.services.push_service.webpush") as mock_webpush:
            result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        mock_webpush.assert_not_called()
        # configuration errors never count against the circuit
        assert breaker.fail_counter == 0
    
    @pytest.mark.asyncio
    async def test_open_circuit_short_circuits_delivery(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush", side_effect=push_error(500)) as mock_webpush:
            for _ in range(3):
                result = await transport.deliver(subscription, payload)
        
        assert result.failure_kind == DeliveryFailureKind.TRANSIENT
        assert result.error == "Push service circuit open"
        assert mock_webpush.call_count == 2
    
    @pytest.mark.asyncio
    async def test_gone_responses_do_not_open_circuit(self, transport, subscription, payload):
        with patch("app.services.push_service.webpush", side_effect=push_error(410)) as mock_webpush:
            for _ in range(4):
                result = await transport.deliver(subscription, payload)
        
        assert result.is_gone
        assert mock_webpush.call_count == 4

"""
자격 증명 제공자 테스트
"""
from unittest.mock import MagicMock

import pytest
import requests

from workspace_stylist.exceptions import AuthError, TransportError
from workspace_stylist.services.credentials import (
    ProxyCredentialProvider,
    StaticCredentialProvider,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def _response(status_code=200, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {"key": "proxy-key"}
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    session = MagicMock()
    session.get.return_value = _response()
    return session


@pytest.fixture
def provider(clock, session):
    return ProxyCredentialProvider(
        url="https://proxy.example.com/key",
        token="app-token",
        cache_seconds=300,
        clock=clock,
        session=session,
    )


class TestStaticCredentialProvider:
    """Tests for StaticCredentialProvider."""

    def test_returns_configured_key(self):
        provider = StaticCredentialProvider("abc123")
        credential = provider.get()

        assert credential.key == "abc123"
        assert provider.is_expired(credential) is False

    def test_missing_key_is_auth_error(self):
        with pytest.raises(AuthError):
            StaticCredentialProvider("")


class TestProxyCredentialProvider:
    """Tests for ProxyCredentialProvider."""

    def test_fetches_with_bearer_token(self, provider, session):
        credential = provider.get()

        assert credential.key == "proxy-key"
        assert credential.expires_at == 1300.0
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer app-token"
        assert kwargs["timeout"] == 10

    def test_cached_until_expiry(self, provider, session, clock):
        provider.get()
        clock.now = 1299.0
        provider.get()
        assert session.get.call_count == 1

        clock.now = 1300.0
        assert provider.is_expired(provider._cached)
        provider.get()
        assert session.get.call_count == 2

    def test_clear_cache_forces_refetch(self, provider, session):
        provider.get()
        provider.clear_cache()
        provider.get()
        assert session.get.call_count == 2

    @pytest.mark.parametrize("status", [401, 403])
    def test_rejected_is_auth_error(self, provider, session, status):
        session.get.return_value = _response(status_code=status)
        with pytest.raises(AuthError):
            provider.get()

    def test_server_error_is_transport_error(self, provider, session):
        session.get.return_value = _response(status_code=500)
        with pytest.raises(TransportError) as exc_info:
            provider.get()
        assert exc_info.value.retryable

    def test_network_failure_is_transport_error(self, provider, session):
        session.get.side_effect = requests.ConnectionError("refused")
        with pytest.raises(TransportError):
            provider.get()

    def test_missing_key_in_payload(self, provider, session):
        session.get.return_value = _response(payload={"other": "value"})
        with pytest.raises(AuthError):
            provider.get()

    def test_invalid_json(self, provider, session):
        response = _response()
        response.json.side_effect = ValueError("not json")
        session.get.return_value = response
        with pytest.raises(TransportError):
            provider.get()

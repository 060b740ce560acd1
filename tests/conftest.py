from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest

# Settings are read at import time; configure the test environment first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("OAUTH_STATE_SECRET", "test-state-secret-for-oauth-bridge")
os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-client-secret")
os.environ.setdefault("XERO_CLIENT_ID", "xero-client-id")
os.environ.setdefault("XERO_CLIENT_SECRET", "xero-client-secret")

from oauthbridge.models.oauth_models import ProviderConfig  # noqa: E402
from oauthbridge.services.oauth import InMemoryNonceStore, OAuthHandler  # noqa: E402
from oauthbridge.services.oauth.factory import reset_nonce_store  # noqa: E402

STATE_SECRET = "unit-test-state-secret"
T0 = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]):
        self.requests: list[httpx.Request] = []

        def _handle(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return responder(request)

        super().__init__(_handle)

    @property
    def calls(self) -> int:
        return len(self.requests)


def form_body(request: httpx.Request) -> dict[str, str]:
    from urllib.parse import parse_qsl

    return dict(parse_qsl(request.content.decode("utf-8")))


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        client_id="client-abc",
        client_secret="secret-xyz",
        redirect_uri="https://app.example.com/integrations/oauth/acme/callback",
        authorization_url="https://auth.acme.test/oauth/authorize",
        token_url="https://auth.acme.test/oauth/token",
        revoke_url="https://auth.acme.test/oauth/revoke",
        scope=("read", "write"),
    )


@pytest.fixture
def make_handler(provider_config, clock):
    """Build a handler around a responder function; returns (handler, transport)."""

    def _make(responder=None, *, config=None, nonce_store=None, **kwargs):
        responder = responder or (lambda request: httpx.Response(500, text="unexpected call"))
        transport = RecordingTransport(responder)
        handler = OAuthHandler(
            config or provider_config,
            STATE_SECRET,
            provider_name="acme",
            nonce_store=nonce_store,
            transport=transport,
            clock=clock,
            **kwargs,
        )
        return handler, transport

    return _make


@pytest.fixture
def nonce_store() -> InMemoryNonceStore:
    return InMemoryNonceStore()


@pytest.fixture(autouse=True)
def _reset_shared_nonce_store():
    reset_nonce_store()
    yield
    reset_nonce_store()

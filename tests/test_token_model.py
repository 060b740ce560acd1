"""Tests for the OAuthToken value type."""
from datetime import timedelta

import pytest

from conftest import T0
from oauthbridge.models.oauth_models import OAuthToken


def test_from_token_response_computes_expiry_once():
    token = OAuthToken.from_token_response({"access_token": "a", "expires_in": 3600}, issued_at=T0)
    assert token.expires_at == T0 + timedelta(seconds=3600)
    assert token.token_type == "Bearer"


def test_from_token_response_accepts_string_expires_in():
    token = OAuthToken.from_token_response({"access_token": "a", "expires_in": "120"}, issued_at=T0)
    assert token.expires_in == 120
    assert token.expires_at == T0 + timedelta(seconds=120)


@pytest.mark.parametrize("expires_in", [{"seconds": 3600}, [3600], True, "soon", 10**20, float("inf")])
def test_from_token_response_rejects_malformed_expires_in(expires_in):
    with pytest.raises(ValueError, match="expires_in"):
        OAuthToken.from_token_response({"access_token": "a", "expires_in": expires_in}, issued_at=T0)


def test_from_token_response_without_access_token():
    with pytest.raises(ValueError, match="No access token"):
        OAuthToken.from_token_response({"token_type": "bearer"}, issued_at=T0)


def test_from_token_response_falls_back_to_given_refresh_token():
    token = OAuthToken.from_token_response({"access_token": "a"}, issued_at=T0, fallback_refresh_token="keep")
    assert token.refresh_token == "keep"


def test_from_token_response_joins_list_scope():
    token = OAuthToken.from_token_response({"access_token": "a", "scope": ["a", "b"]}, issued_at=T0)
    assert token.scope == "a b"


def test_scopes_split_on_space_and_comma():
    assert OAuthToken(access_token="a", scope="chat:write,users:read files:read").scopes == [
        "chat:write",
        "users:read",
        "files:read",
    ]
    assert OAuthToken(access_token="a").scopes == []


def test_is_expired_boundaries():
    token = OAuthToken(access_token="a", expires_in=60, expires_at=T0 + timedelta(seconds=60))
    assert token.is_expired(now=T0) is False
    assert token.is_expired(now=T0 + timedelta(seconds=59)) is False
    assert token.is_expired(now=T0 + timedelta(seconds=60)) is True


def test_seconds_until_expiry_floors_and_clamps():
    token = OAuthToken(access_token="a", expires_at=T0 + timedelta(seconds=90))
    assert token.seconds_until_expiry(now=T0) == 90
    assert token.seconds_until_expiry(now=T0 + timedelta(seconds=0.9)) == 89
    assert token.seconds_until_expiry(now=T0 + timedelta(hours=1)) == 0


def test_token_without_expiry_never_expires():
    token = OAuthToken(access_token="a")
    assert token.is_expired() is False
    assert token.seconds_until_expiry() is None
    assert token.needs_refresh() is False


def test_needs_refresh_uses_buffer():
    token = OAuthToken(access_token="a", expires_at=T0 + timedelta(seconds=600))
    assert token.needs_refresh(buffer_seconds=300, now=T0) is False
    assert token.needs_refresh(buffer_seconds=300, now=T0 + timedelta(seconds=300)) is True


def test_to_persisted_shape():
    token = OAuthToken(
        access_token="a",
        refresh_token="r",
        expires_at=T0,
        scope="read",
    )
    assert token.to_persisted(7, "xero") == {
        "integration_id": 7,
        "provider": "xero",
        "access_token": "a",
        "refresh_token": "r",
        "expires_at": T0,
        "scope": "read",
    }


def test_repr_hides_token_values():
    token = OAuthToken(access_token="super-secret-access", refresh_token="super-secret-refresh")
    assert "super-secret" not in repr(token)


def test_token_is_immutable():
    token = OAuthToken(access_token="a")
    with pytest.raises(Exception):
        token.access_token = "b"  # type: ignore[misc]

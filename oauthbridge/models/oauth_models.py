"""
OAuth value types.

ProviderConfig, OAuthState and OAuthToken are immutable. A refreshed token is a
new OAuthToken, never an in-place update, and the handler keeps no reference to
tokens it returns. Persistence is owned by the caller (see OAuthToken.to_persisted).
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class ProviderConfig(BaseModel):
    """Endpoints, credentials and flow flags for one configured integration."""

    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str = Field(repr=False)
    redirect_uri: str
    authorization_url: str
    token_url: str
    revoke_url: str | None = None
    scope: tuple[str, ...] = ()
    response_type: str | None = "code"
    access_type: str | None = None
    prompt: str | None = None


class OAuthState(BaseModel):
    """Caller context bound to one authorization attempt.

    Only ever travels inside the signed state token.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    organization_id: str | None = None
    integration_id: int | str
    return_url: str | None = None
    nonce: str
    timestamp: int  # epoch milliseconds

    @classmethod
    def new(
        cls,
        *,
        user_id: str,
        integration_id: int | str,
        organization_id: str | None = None,
        return_url: str | None = None,
        clock: Clock = utc_now,
    ) -> OAuthState:
        """Create a fresh state with a random nonce and the current time."""
        return cls(
            user_id=user_id,
            organization_id=organization_id,
            integration_id=integration_id,
            return_url=return_url,
            nonce=secrets.token_urlsafe(16),
            timestamp=epoch_millis(clock()),
        )


class OAuthToken(BaseModel):
    """
    Access/refresh token pair issued by a provider.

    Attributes:
        access_token: Credential presented to the provider's API
        refresh_token: Credential used to obtain a new access token (optional)
        expires_in: Lifetime in seconds as reported by the provider (optional)
        expires_at: Absolute expiry, computed once from expires_in (optional)
        scope: Granted scope string as reported by the provider (optional)
        token_type: Token type, "Bearer" unless the provider says otherwise
    """

    model_config = ConfigDict(frozen=True)

    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_in: int | None = None
    expires_at: datetime | None = None
    scope: str | None = None
    token_type: str = "Bearer"

    @classmethod
    def from_token_response(
        cls,
        payload: dict[str, Any],
        issued_at: datetime,
        fallback_refresh_token: str | None = None,
    ) -> OAuthToken:
        """
        Map a provider token response onto the token model.

        This is the only place expires_at is derived.

        Args:
            payload: Decoded JSON body from the token endpoint
            issued_at: Time the response was received
            fallback_refresh_token: Refresh token to keep when the provider
                does not rotate it

        Raises:
            ValueError: If the payload has no access token or a bad expires_in
        """
        access_token = payload.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise ValueError("No access token in response")

        expires_in = payload.get("expires_in")
        expires_at = None
        if expires_in is not None:
            # JSON booleans are ints in Python; a provider sending true is malformed.
            if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float, str)):
                raise ValueError(f"Invalid expires_in type in response: {type(expires_in).__name__}")
            try:
                expires_in = int(expires_in)
                expires_at = issued_at + timedelta(seconds=expires_in)
            except (ValueError, OverflowError) as e:
                raise ValueError("Invalid expires_in in response") from e

        scope = payload.get("scope")
        if isinstance(scope, (list, tuple)):
            scope = " ".join(str(item) for item in scope)

        return cls(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or fallback_refresh_token,
            expires_in=expires_in,
            expires_at=expires_at,
            scope=scope,
            token_type=payload.get("token_type") or "Bearer",
        )

    @property
    def scopes(self) -> list[str]:
        if not self.scope:
            return []
        return [s for s in self.scope.replace(",", " ").split() if s]

    def is_expired(self, now: datetime | None = None) -> bool:
        """Tokens without expires_at are treated as non-expiring."""
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at

    def seconds_until_expiry(self, now: datetime | None = None) -> int | None:
        if self.expires_at is None:
            return None
        remaining = (self.expires_at - (now or utc_now())).total_seconds()
        return max(0, int(remaining))

    def needs_refresh(self, buffer_seconds: int = 300, now: datetime | None = None) -> bool:
        """Check if the token is expired or will expire within buffer_seconds."""
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at - timedelta(seconds=buffer_seconds)

    def to_persisted(self, integration_id: int | str, provider: str) -> dict[str, Any]:
        """Shape the caller stores for a connected integration."""
        return {
            "integration_id": integration_id,
            "provider": provider,
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "scope": self.scope,
        }


class OAuthCallbackResult(BaseModel):
    """Verified state and the token it produced."""

    model_config = ConfigDict(frozen=True)

    state: OAuthState
    token: OAuthToken

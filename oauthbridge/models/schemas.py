"""API schemas for the OAuth integration routes."""
from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field


class OAuthProviderOut(BaseModel):
    name: str
    display_name: str
    enabled: bool = True
    supports_refresh: bool
    supports_revoke: bool


class OAuthProvidersOut(BaseModel):
    providers: list[OAuthProviderOut]


class AuthorizeRequest(BaseModel):
    """Caller context to bind to a new authorization attempt."""
    user_id: str = Field(..., min_length=1)
    organization_id: str | None = None
    integration_id: int | str
    return_url: str | None = None


class AuthorizeOut(BaseModel):
    provider: str
    authorization_url: str


class TokenOut(BaseModel):
    """Persisted shape of a connected integration's credentials."""
    integration_id: int | str | None = None
    provider: str
    access_token: str
    refresh_token: str | None = None
    expires_at: dt.datetime | None = None
    scope: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None


class OAuthCallbackOut(BaseModel):
    provider: str
    user_id: str
    organization_id: str | None = None
    integration_id: int | str
    return_url: str | None = None
    token: TokenOut


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class RevokeRequest(BaseModel):
    token: str = Field(..., min_length=1)
    token_type_hint: Literal["access_token", "refresh_token"] = "access_token"


class RevokeOut(BaseModel):
    provider: str
    revoked: bool

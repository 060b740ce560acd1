"""
OAuth 2.0 integration routes.

Endpoints:
- GET  /integrations/oauth/providers - List configured providers
- POST /integrations/oauth/{provider}/authorize - Build an authorization URL
- GET  /integrations/oauth/{provider}/callback - Verify state and exchange code
- POST /integrations/oauth/{provider}/refresh - Refresh an access token
- POST /integrations/oauth/{provider}/revoke - Revoke a token (best effort)

Mounted behind the platform's own authentication. Token persistence belongs to
the caller: every route returns the token and stores nothing.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from oauthbridge.models import schemas
from oauthbridge.models.oauth_models import OAuthState, OAuthToken
from oauthbridge.services.oauth import (
    OAuthHandler,
    ProviderAuthorizationDenied,
    configured_providers,
    create_oauth_handler,
    get_provider_defaults,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/integrations/oauth", tags=["oauth"])

_handlers: dict[str, OAuthHandler] = {}


def get_oauth_handler(provider: str) -> OAuthHandler:
    """Return the cached handler for a provider, creating it on first use."""
    key = provider.strip().lower()
    handler = _handlers.get(key)
    if handler is None:
        handler = create_oauth_handler(key)
        _handlers[key] = handler
    return handler


def _token_out(token: OAuthToken, provider: str, integration_id: int | str | None = None) -> schemas.TokenOut:
    return schemas.TokenOut(
        **token.to_persisted(integration_id, provider),
        token_type=token.token_type,
        expires_in=token.expires_in,
    )


@router.get("/providers", response_model=schemas.OAuthProvidersOut)
async def list_oauth_providers() -> dict:
    """List providers with credentials configured."""
    providers = []
    for name in configured_providers():
        defaults = get_provider_defaults(name)
        providers.append({
            "name": name,
            "display_name": defaults.display_name,
            "enabled": True,
            "supports_refresh": defaults.supports_refresh,
            "supports_revoke": True,
        })
    return {"providers": providers}


@router.post("/{provider}/authorize", response_model=schemas.AuthorizeOut)
async def authorize(
    provider: str,
    payload: schemas.AuthorizeRequest,
    handler: Annotated[OAuthHandler, Depends(get_oauth_handler)],
) -> dict:
    """
    Build the provider authorization URL for a new connection attempt.

    Example:
        POST /integrations/oauth/xero/authorize
        {"user_id": "u1", "integration_id": 7, "return_url": "https://app.example.com/integrations"}
    """
    state = OAuthState.new(
        user_id=payload.user_id,
        organization_id=payload.organization_id,
        integration_id=payload.integration_id,
        return_url=payload.return_url,
    )
    return {"provider": handler.provider_name, "authorization_url": handler.generate_auth_url(state)}


@router.get("/{provider}/callback", response_model=schemas.OAuthCallbackOut)
async def oauth_callback(
    provider: str,
    handler: Annotated[OAuthHandler, Depends(get_oauth_handler)],
    code: str | None = Query(None, description="Authorization code from OAuth provider"),
    state: str | None = Query(None, description="Signed state token"),
    error: str | None = Query(None, description="Error reported by the provider"),
    error_description: str | None = Query(None),
) -> dict:
    """
    Handle OAuth provider callback.

    Completes the connection:
    1. Rejects provider-reported errors
    2. Verifies the signed state (before any network call)
    3. Exchanges the code for a token
    4. Returns the caller context and the token for the caller to persist
    """
    if error:
        logger.info("Provider denied authorization | provider=%s error=%s", handler.provider_name, error)
        raise ProviderAuthorizationDenied(error, error_description)

    result = await handler.complete_authorization(code or "", state or "")
    oauth_state = result.state
    return {
        "provider": handler.provider_name,
        "user_id": oauth_state.user_id,
        "organization_id": oauth_state.organization_id,
        "integration_id": oauth_state.integration_id,
        "return_url": oauth_state.return_url,
        "token": _token_out(result.token, handler.provider_name, oauth_state.integration_id),
    }


@router.post("/{provider}/refresh", response_model=schemas.TokenOut)
async def refresh(
    provider: str,
    payload: schemas.RefreshRequest,
    handler: Annotated[OAuthHandler, Depends(get_oauth_handler)],
) -> schemas.TokenOut:
    token = await handler.refresh_access_token(payload.refresh_token)
    return _token_out(token, handler.provider_name)


@router.post("/{provider}/revoke", response_model=schemas.RevokeOut)
async def revoke(
    provider: str,
    payload: schemas.RevokeRequest,
    handler: Annotated[OAuthHandler, Depends(get_oauth_handler)],
) -> dict:
    """Revoke at the provider. Always 200 so local disconnect can proceed."""
    revoked = await handler.revoke_token(payload.token, payload.token_type_hint)
    return {"provider": handler.provider_name, "revoked": revoked}

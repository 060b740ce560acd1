"""Factory functions for creating configured OAuth handlers."""
from __future__ import annotations

import logging

import httpx

from oauthbridge.core.config import BaseAppSettings, settings as default_settings
from oauthbridge.core.exceptions import ConfigurationError, UnknownProviderError

from .handler import OAuthHandler
from .nonce_store import InMemoryNonceStore, NonceStore, RedisNonceStore
from .providers import PROVIDER_REGISTRY, build_provider_config, get_provider_defaults

logger = logging.getLogger(__name__)

# Shared across handlers so a nonce consumed by one request is seen by the next.
_nonce_store: NonceStore | None = None


def get_nonce_store(app_settings: BaseAppSettings | None = None) -> NonceStore:
    """Get or create the process-wide nonce store for the configured backend."""
    global _nonce_store
    if _nonce_store is None:
        app_settings = app_settings or default_settings
        if app_settings.OAUTH_NONCE_BACKEND == "redis":
            _nonce_store = RedisNonceStore.from_url(app_settings.REDIS_URL)
            logger.info("OAuth nonce store: redis")
        else:
            _nonce_store = InMemoryNonceStore()
            logger.info("OAuth nonce store: in-memory")
    return _nonce_store


def reset_nonce_store() -> None:
    global _nonce_store
    _nonce_store = None


def require_state_secret(app_settings: BaseAppSettings | None = None) -> str:
    """
    Return the state signing secret or fail hard.

    Raises:
        ConfigurationError: If OAUTH_STATE_SECRET is unset
    """
    app_settings = app_settings or default_settings
    if not app_settings.OAUTH_STATE_SECRET:
        raise ConfigurationError("OAUTH_STATE_SECRET", "state signing secret is required")
    return app_settings.OAUTH_STATE_SECRET


def configured_providers(app_settings: BaseAppSettings | None = None) -> list[str]:
    """Registry providers that have both client ID and secret configured."""
    app_settings = app_settings or default_settings
    enabled = []
    for name in PROVIDER_REGISTRY:
        client_id, client_secret = app_settings.provider_credentials(name)
        if client_id and client_secret:
            enabled.append(name)
    return enabled


def create_oauth_handler(
    provider: str,
    app_settings: BaseAppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> OAuthHandler:
    """
    Factory function to create a configured OAuth handler.

    Args:
        provider: Registry key (e.g. "google")
        app_settings: Settings to read credentials from (defaults to global settings)
        transport: Optional httpx transport override

    Returns:
        OAuthHandler bound to the provider's config and the state secret

    Raises:
        UnknownProviderError: If the provider is not in the registry
        ConfigurationError: If credentials or the state secret are missing
    """
    app_settings = app_settings or default_settings
    provider = (provider or "").strip().lower()
    get_provider_defaults(provider)

    client_id, client_secret = app_settings.provider_credentials(provider)
    if not client_id and not client_secret:
        logger.warning("OAuth provider %s not configured (missing client ID/secret)", provider)
        raise UnknownProviderError(provider)

    config = build_provider_config(
        provider,
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=app_settings.redirect_uri_for(provider),
    )
    nonce_store = get_nonce_store(app_settings) if app_settings.OAUTH_STATE_SINGLE_USE else None

    return OAuthHandler(
        config,
        require_state_secret(app_settings),
        provider_name=provider,
        nonce_store=nonce_store,
        state_max_age_seconds=app_settings.OAUTH_STATE_MAX_AGE_SECONDS,
        timeout=app_settings.OAUTH_HTTP_TIMEOUT_SECONDS,
        transport=transport,
    )

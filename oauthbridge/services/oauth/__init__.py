"""OAuth 2.0 integration handler.

Connects the platform to third-party services (payments, messaging,
accounting, mail/calendar) on a user's behalf.

Components:
- Provider registry: endpoints, default scopes and flow flags per provider
- State codec: signed, timestamped state tokens for the redirect round-trip
- OAuthHandler: authorization URL, code exchange, refresh, revocation and
  authenticated requests
"""
from .exceptions import (
    InvalidStateError,
    OAuthError,
    ProviderAuthorizationDenied,
    ProviderRequestError,
    TokenExchangeError,
    TokenRefreshError,
)
from .factory import configured_providers, create_oauth_handler
from .handler import OAuthHandler
from .nonce_store import InMemoryNonceStore, NonceStore, RedisNonceStore
from .providers import PROVIDER_REGISTRY, build_provider_config, get_provider_defaults
from .state import StateCodec

__all__ = [
    # Exceptions
    "OAuthError",
    "InvalidStateError",
    "ProviderRequestError",
    "TokenExchangeError",
    "TokenRefreshError",
    "ProviderAuthorizationDenied",
    # Providers
    "PROVIDER_REGISTRY",
    "build_provider_config",
    "get_provider_defaults",
    # State
    "StateCodec",
    "NonceStore",
    "InMemoryNonceStore",
    "RedisNonceStore",
    # Handler
    "OAuthHandler",
    # Factory
    "create_oauth_handler",
    "configured_providers",
]

"""Static registry of supported OAuth providers.

Each entry holds endpoint URLs, default scopes and flow flags. Credentials are
never part of the registry; they are supplied per integration through
build_provider_config().
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from oauthbridge.core.exceptions import ConfigurationError, UnknownProviderError
from oauthbridge.models.oauth_models import ProviderConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderDefaults:
    display_name: str
    authorization_url: str
    token_url: str
    scope: tuple[str, ...]
    revoke_url: str | None = None
    response_type: str = "code"
    access_type: str | None = None
    prompt: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def supports_refresh(self) -> bool:
        # Stripe Connect tokens do not expire; every other entry issues refresh tokens.
        return self.extra.get("supports_refresh", True)


PROVIDER_REGISTRY: dict[str, ProviderDefaults] = {
    "stripe": ProviderDefaults(
        display_name="Stripe",
        authorization_url="https://connect.stripe.com/oauth/authorize",
        token_url="https://connect.stripe.com/oauth/token",
        revoke_url="https://connect.stripe.com/oauth/deauthorize",
        scope=("read_write",),
        extra={"supports_refresh": False},
    ),
    "slack": ProviderDefaults(
        display_name="Slack",
        authorization_url="https://slack.com/oauth/v2/authorize",
        token_url="https://slack.com/api/oauth.v2.access",
        revoke_url="https://slack.com/api/auth.revoke",
        scope=("chat:write", "channels:read", "users:read"),
    ),
    "quickbooks": ProviderDefaults(
        display_name="QuickBooks Online",
        authorization_url="https://appcenter.intuit.com/connect/oauth2",
        token_url="https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer",
        revoke_url="https://developer.api.intuit.com/v2/oauth2/tokens/revoke",
        scope=("com.intuit.quickbooks.accounting",),
    ),
    "xero": ProviderDefaults(
        display_name="Xero",
        authorization_url="https://login.xero.com/identity/connect/authorize",
        token_url="https://identity.xero.com/connect/token",
        revoke_url="https://identity.xero.com/connect/revocation",
        scope=("openid", "profile", "email", "accounting.transactions", "offline_access"),
    ),
    "google": ProviderDefaults(
        display_name="Google Workspace",
        authorization_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        revoke_url="https://oauth2.googleapis.com/revoke",
        scope=(
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/calendar",
        ),
        access_type="offline",  # Request refresh token
        prompt="consent",  # Force consent to get refresh token
    ),
    "microsoft": ProviderDefaults(
        display_name="Microsoft 365",
        authorization_url="https://login.microsoftonline.com/common/oauth2/v2.0/authorize",
        token_url="https://login.microsoftonline.com/common/oauth2/v2.0/token",
        scope=("offline_access", "Mail.Read", "Calendars.ReadWrite"),
        prompt="select_account",
    ),
}


def get_provider_defaults(provider: str) -> ProviderDefaults:
    """
    Look up a registry entry.

    Raises:
        UnknownProviderError: If the provider is not registered
    """
    key = (provider or "").strip().lower()
    if key not in PROVIDER_REGISTRY:
        raise UnknownProviderError(provider)
    return PROVIDER_REGISTRY[key]


REQUIRED_FIELDS = ("client_id", "client_secret", "redirect_uri")


def build_provider_config(
    provider: str,
    *,
    client_id: str | None,
    client_secret: str | None,
    redirect_uri: str | None,
    **overrides: Any,
) -> ProviderConfig:
    """
    Build a complete ProviderConfig from registry defaults plus credentials.

    Fails fast instead of producing a config that only breaks at the first
    network call.

    Args:
        provider: Registry key (e.g. "xero")
        client_id: OAuth client ID issued by the provider
        client_secret: OAuth client secret issued by the provider
        redirect_uri: Callback URL registered with the provider
        **overrides: Any ProviderConfig field to replace (e.g. scope)

    Raises:
        UnknownProviderError: If the provider is not registered
        ConfigurationError: If a required field is missing or an override is unknown
    """
    defaults = get_provider_defaults(provider)

    unknown = set(overrides) - set(ProviderConfig.model_fields)
    if unknown:
        raise ConfigurationError(", ".join(sorted(unknown)), "unknown provider config field")

    values: dict[str, Any] = {
        "client_id": client_id,
        "client_secret": client_secret,
        "redirect_uri": redirect_uri,
        "authorization_url": defaults.authorization_url,
        "token_url": defaults.token_url,
        "revoke_url": defaults.revoke_url,
        "scope": defaults.scope,
        "response_type": defaults.response_type,
        "access_type": defaults.access_type,
        "prompt": defaults.prompt,
    }
    values.update(overrides)
    if isinstance(values["scope"], str):
        values["scope"] = tuple(values["scope"].split())

    ensure_complete(values, provider)
    return ProviderConfig(**values)


def ensure_complete(values: dict[str, Any], provider: str | None = None) -> None:
    """Raise ConfigurationError for the first missing required endpoint or credential."""
    label = f"{provider}." if provider else ""
    for name in (*REQUIRED_FIELDS, "authorization_url", "token_url"):
        value = values.get(name)
        if not value or not str(value).strip():
            raise ConfigurationError(f"{label}{name}", "required")

"""OAuth handler exceptions."""
from __future__ import annotations

from oauthbridge.core.exceptions import IntegrationException


class OAuthError(IntegrationException):
    """Base class for OAuth flow errors."""
    pass


class InvalidStateError(OAuthError):
    """State token failed verification (signature, structure, age or reuse).

    The message is deliberately generic and never carries signature material.
    """

    def __init__(self) -> None:
        super().__init__(
            message="Invalid state token. Possible CSRF attack or expired session.",
            code="OAU001",
            status_code=400,
        )


class ProviderRequestError(OAuthError):
    """Raised when the provider's token endpoint rejects or fails a request."""

    def __init__(
        self,
        message: str,
        code: str,
        provider_status: int | None = None,
        provider_body: str | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=502,
            details={"provider_status": provider_status},
        )
        self.provider_status = provider_status
        # Raw provider payload for operator diagnostics; not part of to_dict().
        self.provider_body = provider_body


class TokenExchangeError(ProviderRequestError):
    """Raised when exchanging an authorization code fails."""

    def __init__(self, message: str, provider_status: int | None = None, provider_body: str | None = None):
        super().__init__(message, "OAU002", provider_status, provider_body)


class TokenRefreshError(ProviderRequestError):
    """Raised when refreshing an access token fails."""

    def __init__(self, message: str, provider_status: int | None = None, provider_body: str | None = None):
        super().__init__(message, "OAU003", provider_status, provider_body)


class ProviderAuthorizationDenied(OAuthError):
    """Provider redirected back with an error instead of a code."""

    def __init__(self, error: str, description: str | None = None):
        super().__init__(
            message=f"Authorization was not granted: {error}",
            code="OAU004",
            status_code=400,
            details={"error": error, "error_description": description},
        )

"""OAuth 2.0 authorization code flow handler.

One handler per (ProviderConfig, state secret) pair. The handler keeps no
per-flow state: caller context travels inside the signed state token, so any
number of flows may run concurrently against the same instance.

Responsibilities:
- Build authorization URLs
- Exchange authorization codes, refresh and revoke tokens
- Proxy authenticated requests to the provider's API
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from oauthbridge import metrics
from oauthbridge.core.exceptions import ConfigurationError
from oauthbridge.models.oauth_models import (
    Clock,
    OAuthCallbackResult,
    OAuthState,
    OAuthToken,
    ProviderConfig,
    utc_now,
)

from .exceptions import InvalidStateError, ProviderRequestError, TokenExchangeError, TokenRefreshError
from .nonce_store import NonceStore
from .providers import ensure_complete
from .state import DEFAULT_MAX_AGE_SECONDS, StateCodec

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def _fingerprint(value: str) -> str:
    """Short, non-reversible identifier for correlating logs."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def _describe_body(response: httpx.Response) -> str:
    """Loggable summary of a token endpoint body: its error code or top-level keys, never values."""
    try:
        payload = response.json()
    except ValueError:
        return f"non-JSON body ({len(response.content)} bytes)"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str):
            return f"error={error[:64]}"
        return "keys=" + ",".join(sorted(str(key)[:32] for key in payload))
    return f"JSON {type(payload).__name__}"


class OAuthHandler:
    """
    Orchestrates the OAuth 2.0 authorization code flow for one provider.

    Args:
        config: Complete provider configuration
        state_secret: Secret used to sign and verify state tokens
        provider_name: Identifier used in logs and metrics
        nonce_store: Records used state nonces; None accepts replay within
            the freshness window
        state_max_age_seconds: Freshness window for state tokens
        timeout: Deadline in seconds for every outbound request
        transport: Optional httpx transport (tests inject MockTransport)
        clock: Returns the current aware UTC datetime

    Raises:
        ConfigurationError: If the config or secret is incomplete
    """

    def __init__(
        self,
        config: ProviderConfig,
        state_secret: str | None,
        *,
        provider_name: str = "custom",
        nonce_store: NonceStore | None = None,
        state_max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Clock = utc_now,
    ):
        ensure_complete(config.model_dump(), provider_name)
        if timeout <= 0:
            raise ConfigurationError("OAUTH_HTTP_TIMEOUT_SECONDS", "must be positive")

        self.config = config
        self.provider_name = provider_name
        self.codec = StateCodec(state_secret, max_age_seconds=state_max_age_seconds, clock=clock)
        self.nonce_store = nonce_store
        self.timeout = timeout
        self._transport = transport
        self._clock = clock
        self.revoke_url = self._resolve_revoke_url(config)

        if nonce_store is None:
            logger.info(
                "OAuth state replay protection disabled | provider=%s window=%ss",
                provider_name,
                self.codec.max_age_seconds,
            )

    def _resolve_revoke_url(self, config: ProviderConfig) -> str:
        if config.revoke_url:
            return config.revoke_url
        derived = config.token_url.replace("/token", "/revoke")
        logger.warning(
            "No revoke_url configured; using derived default | provider=%s revoke_url=%s",
            self.provider_name,
            derived,
        )
        return derived

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def encode_state(self, state: OAuthState) -> str:
        return self.codec.encode_state(state)

    def decode_state(self, encoded: str) -> OAuthState | None:
        return self.codec.decode_state(encoded)

    def _verify_and_consume_state(self, encoded: str) -> OAuthState:
        verified = self.codec.verify(encoded)
        if verified is None:
            metrics.state_rejected(self.provider_name, "invalid")
            raise InvalidStateError()
        if self.nonce_store is not None:
            if not self.nonce_store.consume(verified.nonce, self.codec.max_age_seconds):
                logger.warning("OAuth state replay rejected | provider=%s", self.provider_name)
                metrics.state_rejected(self.provider_name, "replayed")
                raise InvalidStateError()
        return verified.state

    # ------------------------------------------------------------------
    # Authorization URL
    # ------------------------------------------------------------------

    def generate_auth_url(self, state: OAuthState) -> str:
        """
        Generate authorization URL for the OAuth flow. No I/O.

        Args:
            state: Caller context to bind to the callback

        Returns:
            Full authorization URL with query parameters
        """
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": self.config.response_type or "code",
            "scope": " ".join(self.config.scope),
            "state": self.encode_state(state),
        }
        if self.config.access_type:
            params["access_type"] = self.config.access_type
        if self.config.prompt:
            params["prompt"] = self.config.prompt

        metrics.authorization_url_issued(self.provider_name)
        logger.info(
            "Authorization URL issued | provider=%s integration_id=%s",
            self.provider_name,
            state.integration_id,
        )
        return f"{self.config.authorization_url}?{urlencode(params)}"

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    async def _post_token_endpoint(
        self,
        data: dict[str, str],
        error_cls: type[ProviderRequestError],
        action: str,
    ) -> dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.post(
                    self.config.token_url,
                    data=data,
                    headers={"Accept": "application/json"},
                )
            except httpx.RequestError as e:
                logger.error(
                    "%s request failed | provider=%s error=%s", action, self.provider_name, type(e).__name__
                )
                raise error_cls(f"{action} failed: could not reach OAuth provider") from e

        if not response.is_success:
            logger.error(
                "%s failed | provider=%s status=%s body=%s",
                action,
                self.provider_name,
                response.status_code,
                _describe_body(response),
            )
            raise error_cls(
                f"{action} failed: {response.status_code}",
                provider_status=response.status_code,
                provider_body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise error_cls(
                f"{action} failed: provider returned a non-JSON body",
                provider_status=response.status_code,
                provider_body=response.text,
            ) from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            logger.error(
                "%s failed: no access token | provider=%s status=%s body=%s",
                action,
                self.provider_name,
                response.status_code,
                _describe_body(response),
            )
            raise error_cls(
                f"{action} failed: no access token in response",
                provider_status=response.status_code,
                provider_body=response.text,
            )
        return payload

    async def complete_authorization(self, code: str, state: str) -> OAuthCallbackResult:
        """
        Verify the callback state and exchange the code for a token.

        Args:
            code: Authorization code from the provider callback
            state: Encoded state from the provider callback

        Returns:
            The verified caller context and the new token

        Raises:
            InvalidStateError: If state is forged, corrupted, expired or reused.
                Raised before any network call.
            TokenExchangeError: If the provider rejects the exchange
        """
        oauth_state = self._verify_and_consume_state(state)
        if not code:
            raise TokenExchangeError("Token exchange failed: missing authorization code")

        logger.info(
            "Token exchange attempt | provider=%s code_hash=%s integration_id=%s",
            self.provider_name,
            _fingerprint(code),
            oauth_state.integration_id,
        )
        data = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "redirect_uri": self.config.redirect_uri,
            "code": code,
        }
        try:
            payload = await self._post_token_endpoint(data, TokenExchangeError, "Token exchange")
        except TokenExchangeError:
            metrics.code_exchange_record(self.provider_name, success=False)
            raise

        try:
            token = OAuthToken.from_token_response(payload, issued_at=self._clock())
        except ValueError as e:
            metrics.code_exchange_record(self.provider_name, success=False)
            raise TokenExchangeError(f"Token exchange failed: {e}") from e
        metrics.code_exchange_record(self.provider_name, success=True)
        logger.info(
            "Token exchange SUCCESS | provider=%s code_hash=%s has_refresh=%s",
            self.provider_name,
            _fingerprint(code),
            token.refresh_token is not None,
        )
        return OAuthCallbackResult(state=oauth_state, token=token)

    async def exchange_code_for_token(self, code: str, state: str) -> OAuthToken:
        result = await self.complete_authorization(code, state)
        return result.token

    async def refresh_access_token(self, refresh_token: str) -> OAuthToken:
        """
        Obtain a new access token.

        Providers that rotate refresh tokens return a new one; when the
        response omits it, the supplied refresh_token is carried over unchanged.

        Raises:
            TokenRefreshError: If the provider rejects the refresh
        """
        if not refresh_token:
            raise TokenRefreshError("Token refresh failed: no refresh token available")

        data = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": refresh_token,
        }
        try:
            payload = await self._post_token_endpoint(data, TokenRefreshError, "Token refresh")
        except TokenRefreshError:
            metrics.token_refresh_record(self.provider_name, success=False)
            raise

        try:
            token = OAuthToken.from_token_response(
                payload,
                issued_at=self._clock(),
                fallback_refresh_token=refresh_token,
            )
        except ValueError as e:
            metrics.token_refresh_record(self.provider_name, success=False)
            raise TokenRefreshError(f"Token refresh failed: {e}") from e
        metrics.token_refresh_record(self.provider_name, success=True)
        logger.info(
            "Token refresh SUCCESS | provider=%s rotated=%s",
            self.provider_name,
            token.refresh_token != refresh_token,
        )
        return token

    async def revoke_token(self, token: str, token_type: str = "access_token") -> bool:
        """
        Revoke a token at the provider. Best effort: never raises.

        Returns:
            True if the provider acknowledged the revocation, False otherwise
        """
        data = {
            "token": token,
            "token_type_hint": token_type,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
        }
        try:
            async with self._client() as client:
                response = await client.post(self.revoke_url, data=data)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(
                "Token revocation failed | provider=%s error=%s", self.provider_name, type(e).__name__
            )
            metrics.revocation_record(self.provider_name, success=False)
            return False

        if not response.is_success:
            logger.warning(
                "Token revocation rejected | provider=%s status=%s", self.provider_name, response.status_code
            )
            metrics.revocation_record(self.provider_name, success=False)
            return False

        metrics.revocation_record(self.provider_name, success=True)
        logger.info("Token revoked | provider=%s token_type=%s", self.provider_name, token_type)
        return True

    # ------------------------------------------------------------------
    # Authenticated requests
    # ------------------------------------------------------------------

    async def make_authenticated_request(
        self,
        url: str,
        token: str | OAuthToken,
        *,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        authorization: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request to the provider's API with the bearer token attached.

        Caller headers are merged over the defaults, but an Authorization entry
        in headers is ignored: the injected bearer header wins. Pass
        authorization= to send a different Authorization value.

        Args:
            url: Absolute API URL
            token: Access token string or OAuthToken
            method: HTTP method
            headers: Extra headers
            authorization: Full Authorization header value overriding the bearer token
            **kwargs: Forwarded to httpx (json, params, content, ...)

        Returns:
            The provider's response, unchecked
        """
        access_token = token.access_token if isinstance(token, OAuthToken) else token

        merged = httpx.Headers({"Accept": "application/json", "Content-Type": "application/json"})
        caller_headers = httpx.Headers(headers or {})
        if "authorization" in caller_headers:
            logger.warning(
                "Ignoring Authorization from headers; use authorization= to override | provider=%s",
                self.provider_name,
            )
            del caller_headers["authorization"]
        merged.update(caller_headers)
        merged["Authorization"] = authorization or f"Bearer {access_token}"

        async with self._client() as client:
            return await client.request(method, url, headers=merged, **kwargs)

    # ------------------------------------------------------------------
    # Expiration queries
    # ------------------------------------------------------------------

    def is_token_expired(self, token: OAuthToken) -> bool:
        return token.is_expired(now=self._clock())

    def get_token_expiration_time(self, token: OAuthToken) -> int | None:
        """Seconds until expiry, floored at zero; None for non-expiring tokens."""
        return token.seconds_until_expiry(now=self._clock())

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "OAuthBridge"
    ENV: str = "dev"
    BACKEND_URL: str = "https://api.example.com"  # Base for provider redirect URIs
    OAUTH_CALLBACK_PATH: str = "/integrations/oauth/{provider}/callback"

    # State signing. No default on purpose: absence is a startup failure.
    OAUTH_STATE_SECRET: str | None = None
    OAUTH_STATE_MAX_AGE_SECONDS: int = 600
    OAUTH_STATE_SINGLE_USE: bool = True
    OAUTH_NONCE_BACKEND: str = "memory"  # Options: memory, redis
    OAUTH_HTTP_TIMEOUT_SECONDS: float = 10.0

    REDIS_URL: str = "redis://localhost:6379/0"

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["*"]
    CORS_ALLOW_HEADERS: list[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "plain"

    # Provider credentials (one pair per integration)
    STRIPE_CLIENT_ID: str | None = None
    STRIPE_CLIENT_SECRET: str | None = None
    SLACK_CLIENT_ID: str | None = None
    SLACK_CLIENT_SECRET: str | None = None
    QUICKBOOKS_CLIENT_ID: str | None = None
    QUICKBOOKS_CLIENT_SECRET: str | None = None
    XERO_CLIENT_ID: str | None = None
    XERO_CLIENT_SECRET: str | None = None
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    MICROSOFT_CLIENT_ID: str | None = None
    MICROSOFT_CLIENT_SECRET: str | None = None

    @field_validator("OAUTH_NONCE_BACKEND", mode="before")
    @classmethod
    def normalize_nonce_backend(cls, v):
        """Accept any casing; only memory and redis are supported."""
        value = str(v).strip().lower()
        if value not in {"memory", "redis"}:
            raise ValueError(f"Unsupported OAUTH_NONCE_BACKEND: {v}")
        return value

    @model_validator(mode="after")
    def _validate_required_fields(self) -> BaseAppSettings:
        if self.OAUTH_STATE_MAX_AGE_SECONDS <= 0:
            raise ValueError("OAUTH_STATE_MAX_AGE_SECONDS must be positive")
        if self.ENV.lower() == "prod":
            if not self.OAUTH_STATE_SECRET:
                raise ValueError("Missing required production settings: OAUTH_STATE_SECRET")
            if len(self.OAUTH_STATE_SECRET) < 32:
                raise ValueError("Insecure secrets in production: OAUTH_STATE_SECRET shorter than 32 characters")
        return self

    def provider_credentials(self, provider: str) -> tuple[str | None, str | None]:
        """Return (client_id, client_secret) configured for a provider."""
        prefix = provider.upper()
        return (
            getattr(self, f"{prefix}_CLIENT_ID", None),
            getattr(self, f"{prefix}_CLIENT_SECRET", None),
        )

    def redirect_uri_for(self, provider: str) -> str:
        return f"{self.BACKEND_URL.rstrip('/')}{self.OAUTH_CALLBACK_PATH.format(provider=provider)}"


class DevSettings(BaseAppSettings):
    ENV: str = "dev"
    BACKEND_URL: str = "http://localhost:8000"


class TestSettings(BaseAppSettings):
    ENV: str = "test"
    BACKEND_URL: str = "http://testserver"


class ProdSettings(BaseAppSettings):
    ENV: str = "prod"
    CORS_ALLOW_CREDENTIALS: bool = True
    LOG_FORMAT: str = "json"
    OAUTH_NONCE_BACKEND: str = "redis"


_ENV_TO_SETTINGS: dict[str, type[BaseAppSettings]] = {
    "dev": DevSettings,
    "development": DevSettings,
    "test": TestSettings,
    "testing": TestSettings,
    "prod": ProdSettings,
    "production": ProdSettings,
}


@lru_cache
def get_settings() -> BaseAppSettings:
    env_name = os.getenv("APP_ENV") or os.getenv("ENV") or "dev"
    env = env_name.lower()
    settings_cls = _ENV_TO_SETTINGS.get(env, DevSettings)
    return settings_cls()


settings = get_settings()

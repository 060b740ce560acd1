"""Custom exception hierarchy for OAuthBridge.

All errors raised to callers inherit from IntegrationException so the API layer
can render them uniformly.

Error codes follow pattern: [CATEGORY][NUMBER]
- OAU: OAuth flow errors (001-099)
- SYS: System/configuration errors (400-499)
"""

from __future__ import annotations

from typing import Any


class IntegrationException(Exception):
    """Base exception for all OAuthBridge errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a caller-facing message and metadata.

        Args:
            message: Error message safe to return to API clients
            code: Unique error code (e.g., "OAU001")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# SYSTEM ERRORS (SYS400-499)
# ============================================================================

class SystemError(IntegrationException):
    """Base class for system/infrastructure errors."""
    pass


class ConfigurationError(SystemError):
    """Application configuration is invalid or missing."""

    def __init__(self, parameter: str, reason: str | None = None):
        message = f"Configuration error: {parameter} is not configured properly"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code="SYS401",
            status_code=500,
            details={"parameter": parameter},
        )


class UnknownProviderError(ConfigurationError):
    """Provider identifier is not in the registry or has no credentials."""

    def __init__(self, provider: str):
        IntegrationException.__init__(
            self,
            message=f"OAuth provider '{provider}' is not supported",
            code="SYS404",
            status_code=404,
            details={"provider": provider},
        )

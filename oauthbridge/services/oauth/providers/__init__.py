"""OAuth providers module."""
from .registry import (
    PROVIDER_REGISTRY,
    ProviderDefaults,
    build_provider_config,
    ensure_complete,
    get_provider_defaults,
)

__all__ = [
    "PROVIDER_REGISTRY",
    "ProviderDefaults",
    "build_provider_config",
    "ensure_complete",
    "get_provider_defaults",
]

"""Metrics facade.

Service code should ONLY call the semantic helpers here so we can change backend freely.

Metrics (all labelled by provider):
- oauth_authorization_urls_total   Authorization URLs issued
- oauth_code_exchanges_total       Code exchanges, by outcome
- oauth_token_refreshes_total      Token refreshes, by outcome
- oauth_revocations_total          Revocation attempts, by outcome
- oauth_state_rejections_total     Callbacks rejected for invalid or replayed state
"""

from __future__ import annotations

import logging

from prometheus_client import Counter

logger = logging.getLogger("metrics")

_AUTH_URLS = Counter(
    "oauth_authorization_urls_total", "Authorization URLs issued", ["provider"]
)
_EXCHANGES = Counter(
    "oauth_code_exchanges_total", "Authorization code exchanges", ["provider", "outcome"]
)
_REFRESHES = Counter(
    "oauth_token_refreshes_total", "Access token refreshes", ["provider", "outcome"]
)
_REVOCATIONS = Counter(
    "oauth_revocations_total", "Token revocation attempts", ["provider", "outcome"]
)
_STATE_REJECTIONS = Counter(
    "oauth_state_rejections_total", "Callbacks rejected for invalid state", ["provider", "reason"]
)


def _outcome(success: bool) -> str:
    return "success" if success else "failure"


def authorization_url_issued(provider: str) -> None:
    _AUTH_URLS.labels(provider=provider).inc()


def code_exchange_record(provider: str, success: bool) -> None:
    _EXCHANGES.labels(provider=provider, outcome=_outcome(success)).inc()
    logger.debug("metric oauth_code_exchanges_total provider=%s outcome=%s", provider, _outcome(success))


def token_refresh_record(provider: str, success: bool) -> None:
    _REFRESHES.labels(provider=provider, outcome=_outcome(success)).inc()


def revocation_record(provider: str, success: bool) -> None:
    _REVOCATIONS.labels(provider=provider, outcome=_outcome(success)).inc()


def state_rejected(provider: str, reason: str) -> None:
    _STATE_REJECTIONS.labels(provider=provider, reason=reason).inc()


__all__ = [
    "authorization_url_issued",
    "code_exchange_record",
    "token_refresh_record",
    "revocation_record",
    "state_rejected",
]

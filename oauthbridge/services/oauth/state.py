"""Signed, time-limited OAuth state tokens.

The state parameter carries the caller context through the provider redirect,
so no server-side storage is needed to bind a callback to its request.

Envelope (JSON, URL-safe base64):
    {"data": <canonical state JSON>, "timestamp": <ms>, "nonce": <random>,
     "signature": HMAC-SHA256(secret, data "." timestamp "." nonce)}
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import json
import logging
import secrets
from dataclasses import dataclass

from pydantic import ValidationError

from oauthbridge.core.exceptions import ConfigurationError
from oauthbridge.models.oauth_models import Clock, OAuthState, epoch_millis, utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 600  # 10 minutes


@dataclass(frozen=True)
class VerifiedState:
    state: OAuthState
    nonce: str
    timestamp: int


def _canonical_json(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


class StateCodec:
    """Encode and verify state tokens with a process-wide shared secret."""

    def __init__(
        self,
        secret: str | None,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
        clock: Clock = utc_now,
    ):
        if not secret:
            raise ConfigurationError("OAUTH_STATE_SECRET", "state signing secret is required")
        if max_age_seconds <= 0:
            raise ConfigurationError("OAUTH_STATE_MAX_AGE_SECONDS", "must be positive")
        self._key = secret.encode("utf-8")
        self.max_age_ms = max_age_seconds * 1000
        self._clock = clock

    @property
    def max_age_seconds(self) -> int:
        return self.max_age_ms // 1000

    def _sign(self, data: str, timestamp: int, nonce: str) -> str:
        message = f"{data}.{timestamp}.{nonce}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def encode_state(self, state: OAuthState) -> str:
        data = _canonical_json(state.model_dump(mode="json"))
        timestamp = epoch_millis(self._clock())
        nonce = secrets.token_urlsafe(16)
        envelope = {
            "data": data,
            "timestamp": timestamp,
            "nonce": nonce,
            "signature": self._sign(data, timestamp, nonce),
        }
        raw = _canonical_json(envelope).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    def verify(self, encoded: str) -> VerifiedState | None:
        """Verify a state token and return it with its envelope nonce.

        Returns None for anything that is not a genuine, fresh token.
        """
        try:
            envelope = self._open_envelope(encoded)
            data = envelope["data"]
            timestamp = envelope["timestamp"]
            nonce = envelope["nonce"]
            signature = envelope["signature"]
            if not (
                isinstance(data, str)
                and isinstance(nonce, str)
                and isinstance(signature, str)
                and isinstance(timestamp, int)
                and not isinstance(timestamp, bool)
            ):
                logger.warning("OAuth state rejected: malformed envelope")
                return None

            expected = self._sign(data, timestamp, nonce)
            if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
                logger.warning("OAuth state rejected: signature mismatch")
                return None

            age_ms = epoch_millis(self._clock()) - timestamp
            if age_ms > self.max_age_ms:
                logger.warning("OAuth state rejected: expired (age=%ss)", age_ms // 1000)
                return None

            state = OAuthState.model_validate_json(data)
        except (ValueError, TypeError, KeyError, ValidationError):
            logger.warning("OAuth state rejected: undecodable token")
            return None

        return VerifiedState(state=state, nonce=nonce, timestamp=timestamp)

    def decode_state(self, encoded: str) -> OAuthState | None:
        verified = self.verify(encoded)
        return verified.state if verified else None

    @staticmethod
    def _open_envelope(encoded: str) -> dict:
        if not isinstance(encoded, str) or not encoded:
            raise ValueError("empty state")
        raw = base64.b64decode(encoded, altchars=b"-_", validate=True)
        # Reject non-canonical encodings so any altered character is detected.
        if base64.urlsafe_b64encode(raw).decode("ascii") != encoded:
            raise ValueError("non-canonical state encoding")
        envelope = json.loads(raw)
        if not isinstance(envelope, dict):
            raise ValueError("state envelope is not an object")
        return envelope

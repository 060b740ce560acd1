"""Single-use tracking for OAuth state nonces.

A signed state stays valid for its whole freshness window. Recording each
envelope nonce on first use closes the replay gap inside that window.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from threading import Lock

import redis

logger = logging.getLogger(__name__)


class NonceStore(ABC):
    """Remembers nonces for at least ttl_seconds."""

    @abstractmethod
    def consume(self, nonce: str, ttl_seconds: int) -> bool:
        """Mark nonce as used. Return False if it was already used."""


class InMemoryNonceStore(NonceStore):
    """Process-local store. Suitable for a single worker."""

    def __init__(self, monotonic=time.monotonic):
        self._seen: dict[str, float] = {}
        self._lock = Lock()
        self._monotonic = monotonic

    def consume(self, nonce: str, ttl_seconds: int) -> bool:
        now = self._monotonic()
        with self._lock:
            expired = [key for key, expires in self._seen.items() if expires <= now]
            for key in expired:
                self._seen.pop(key, None)
            if nonce in self._seen:
                return False
            self._seen[nonce] = now + ttl_seconds
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


class RedisNonceStore(NonceStore):
    """Redis-backed store shared across processes (SET NX EX)."""

    KEY_PREFIX = "oauth:state:nonce:"

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisNonceStore:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    def consume(self, nonce: str, ttl_seconds: int) -> bool:
        key = f"{self.KEY_PREFIX}{nonce}"
        stored = self._client.set(key, "1", nx=True, ex=ttl_seconds)
        if not stored:
            logger.debug("OAuth state nonce already consumed")
        return bool(stored)

"""CSRF token issuance and validation."""

from __future__ import annotations

import hmac
import secrets
import time
from collections.abc import Callable, Mapping
from typing import Protocol

import redis.asyncio as redis  # type: ignore[import-untyped]

from storefront.core.config import Settings

CSRF_HEADER_NAME = "X-CSRF-Token"


def generate_csrf_token() -> str:
    """Return 32 random bytes, hex encoded."""
    return secrets.token_hex(32)


class CsrfTokenStore(Protocol):
    async def get_token(self, session_id: str) -> str | None: ...

    async def set_token(self, session_id: str, token: str) -> None: ...

    async def delete_token(self, session_id: str) -> None: ...

    async def close(self) -> None: ...


class MemoryCsrfTokenStore:
    """Tokens held in process memory until ``ttl_seconds`` after their last write.

    Entries stay in write order, so expired tokens are pruned from the front
    on every write.
    """

    def __init__(
        self, *, ttl_seconds: float = 86400, clock: Callable[[], float] = time.time
    ) -> None:
        self._tokens: dict[str, tuple[str, float]] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._tokens)

    def _prune(self, now: float) -> None:
        while self._tokens:
            session_id = next(iter(self._tokens))
            if self._tokens[session_id][1] > now:
                break
            del self._tokens[session_id]

    async def get_token(self, session_id: str) -> str | None:
        entry = self._tokens.get(session_id)
        if entry is None:
            return None
        token, expires_at = entry
        if expires_at <= self._clock():
            del self._tokens[session_id]
            return None
        return token

    async def set_token(self, session_id: str, token: str) -> None:
        now = self._clock()
        self._tokens.pop(session_id, None)
        self._tokens[session_id] = (token, now + self._ttl_seconds)
        self._prune(now)

    async def delete_token(self, session_id: str) -> None:
        self._tokens.pop(session_id, None)

    async def close(self) -> None:
        self._tokens.clear()


class RedisCsrfTokenStore:
    def __init__(
        self,
        client: redis.Redis,
        *,
        key_prefix: str = "storefront:csrf:",
        ttl_seconds: int = 86400,
    ) -> None:
        self._redis = client
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    async def get_token(self, session_id: str) -> str | None:
        return await self._redis.get(self._key(session_id))

    async def set_token(self, session_id: str, token: str) -> None:
        await self._redis.set(self._key(session_id), token, ex=self._ttl_seconds)

    async def delete_token(self, session_id: str) -> None:
        await self._redis.delete(self._key(session_id))

    async def close(self) -> None:
        await self._redis.aclose()


def build_csrf_store(settings: Settings) -> CsrfTokenStore:
    """Return the store selected by ``CSRF_BACKEND``."""
    if settings.csrf_backend == "redis":
        client = redis.from_url(
            settings.redis_url or "redis://localhost:6379/0",
            encoding="utf-8",
            decode_responses=True,
        )
        return RedisCsrfTokenStore(
            client,
            key_prefix=settings.csrf_key_prefix,
            ttl_seconds=settings.csrf_token_ttl_seconds,
        )
    return MemoryCsrfTokenStore(ttl_seconds=settings.csrf_token_ttl_seconds)


class CsrfProtection:
    """Per-session anti-forgery tokens on top of a pluggable store."""

    def __init__(self, store: CsrfTokenStore | None = None) -> None:
        self.store: CsrfTokenStore = store if store is not None else MemoryCsrfTokenStore()

    async def initialize(self, session_id: str) -> str:
        """Return the session's token, issuing one if none is stored."""
        token = await self.store.get_token(session_id)
        if not token:
            token = generate_csrf_token()
            await self.store.set_token(session_id, token)
        return token

    async def get_token(self, session_id: str) -> str | None:
        return await self.store.get_token(session_id)

    async def validate(self, session_id: str, token: str | None) -> bool:
        stored = await self.store.get_token(session_id)
        if stored is None or not token:
            return False
        return hmac.compare_digest(stored.encode(), token.encode())

    async def refresh(self, session_id: str) -> str:
        token = generate_csrf_token()
        await self.store.set_token(session_id, token)
        return token

    async def attach_header(
        self, session_id: str, headers: Mapping[str, str] | None = None
    ) -> dict[str, str]:
        merged = dict(headers or {})
        token = await self.store.get_token(session_id)
        if token:
            merged[CSRF_HEADER_NAME] = token
        return merged


__all__ = [
    "CSRF_HEADER_NAME",
    "CsrfProtection",
    "CsrfTokenStore",
    "MemoryCsrfTokenStore",
    "RedisCsrfTokenStore",
    "build_csrf_store",
    "generate_csrf_token",
]

"""Decoy-field and timing heuristics for spotting scripted form submissions.

Best effort only: a determined bot can wait out the timer and skip the decoy
field, and a very quick human can trip it.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

import redis.asyncio as redis  # type: ignore[import-untyped]

from storefront.core.config import Settings

HONEYPOT_FIELD_NAME = "website"
MIN_FILL_SECONDS = 2.0
MAX_FILL_SECONDS = 30 * 60.0


@dataclass(frozen=True, slots=True)
class HoneypotField:
    name: str
    value: str
    timestamp: float


@dataclass(frozen=True, slots=True)
class HoneypotVerdict:
    is_bot: bool
    reason: str | None = None


def create_honeypot(now: float | None = None) -> HoneypotField:
    """Return a decoy field stamped with the render time."""
    return HoneypotField(
        name=HONEYPOT_FIELD_NAME,
        value="",
        timestamp=time.time() if now is None else now,
    )


def validate_honeypot(
    value: str | None, timestamp: float, *, now: float | None = None
) -> HoneypotVerdict:
    if value and value.strip():
        return HoneypotVerdict(is_bot=True, reason="Honeypot field filled")

    elapsed = (time.time() if now is None else now) - timestamp
    if elapsed < MIN_FILL_SECONDS:
        return HoneypotVerdict(is_bot=True, reason="Submission too fast")
    if elapsed > MAX_FILL_SECONDS:
        return HoneypotVerdict(is_bot=True, reason="Session timeout")
    return HoneypotVerdict(is_bot=False)


class RenderTimeStore(Protocol):
    """Render times issued per form session, kept server-side."""

    async def get_rendered_at(self, session_id: str) -> float | None: ...

    async def set_rendered_at(self, session_id: str, rendered_at: float) -> None: ...

    async def close(self) -> None: ...


class MemoryRenderTimeStore:
    """Render times dropped once a form could no longer pass the timing check."""

    def __init__(
        self,
        *,
        ttl_seconds: float = MAX_FILL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._rendered: dict[str, float] = {}
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._rendered)

    async def get_rendered_at(self, session_id: str) -> float | None:
        rendered_at = self._rendered.get(session_id)
        if rendered_at is None or rendered_at + self._ttl_seconds <= self._clock():
            return None
        return rendered_at

    async def set_rendered_at(self, session_id: str, rendered_at: float) -> None:
        self._rendered.pop(session_id, None)
        self._rendered[session_id] = rendered_at
        cutoff = self._clock() - self._ttl_seconds
        while self._rendered:
            oldest = next(iter(self._rendered))
            if self._rendered[oldest] > cutoff:
                break
            del self._rendered[oldest]

    async def close(self) -> None:
        self._rendered.clear()


class RedisRenderTimeStore:
    def __init__(
        self,
        client: redis.Redis,
        *,
        key_prefix: str = "storefront:hp:",
        ttl_seconds: int = int(MAX_FILL_SECONDS),
    ) -> None:
        self._redis = client
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds

    def _key(self, session_id: str) -> str:
        return f"{self._key_prefix}{session_id}"

    async def get_rendered_at(self, session_id: str) -> float | None:
        raw = await self._redis.get(self._key(session_id))
        return float(raw) if raw else None

    async def set_rendered_at(self, session_id: str, rendered_at: float) -> None:
        await self._redis.set(
            self._key(session_id), repr(rendered_at), ex=self._ttl_seconds
        )

    async def close(self) -> None:
        await self._redis.aclose()


def build_render_time_store(settings: Settings) -> RenderTimeStore:
    """Return the store selected by ``CSRF_BACKEND``, which holds all session state."""
    if settings.csrf_backend == "redis":
        client = redis.from_url(
            settings.redis_url or "redis://localhost:6379/0",
            encoding="utf-8",
            decode_responses=True,
        )
        return RedisRenderTimeStore(client, key_prefix=settings.honeypot_key_prefix)
    return MemoryRenderTimeStore()


__all__ = [
    "HONEYPOT_FIELD_NAME",
    "HoneypotField",
    "HoneypotVerdict",
    "MemoryRenderTimeStore",
    "RedisRenderTimeStore",
    "RenderTimeStore",
    "build_render_time_store",
    "create_honeypot",
    "validate_honeypot",
]

"""Keyed attempt counter with time-windowed lockout."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Protocol, TypeVar

import redis.asyncio as redis  # type: ignore[import-untyped]
from redis.exceptions import WatchError  # type: ignore[import-untyped]

from storefront.core.config import Settings
from storefront.security.redact import mask_identifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Per call-site policy. Durations are in seconds."""

    max_attempts: int
    window_seconds: float
    block_duration_seconds: float


FORM_RATE_LIMIT = RateLimitConfig(
    max_attempts=3, window_seconds=60, block_duration_seconds=5 * 60
)
LOGIN_RATE_LIMIT = RateLimitConfig(
    max_attempts=5, window_seconds=15 * 60, block_duration_seconds=30 * 60
)
API_RATE_LIMIT = RateLimitConfig(
    max_attempts=100, window_seconds=60, block_duration_seconds=10 * 60
)


@dataclass(frozen=True, slots=True)
class RateLimitEntry:
    attempts: int
    first_attempt: float
    last_attempt: float
    blocked_until: float | None = None

    def is_blocked(self, now: float) -> bool:
        return self.blocked_until is not None and self.blocked_until > now


@dataclass(frozen=True, slots=True)
class RateLimitStatus:
    allowed: bool
    remaining_attempts: int
    reset_time: float | None = None


Transition = Callable[[RateLimitEntry | None], tuple[RateLimitEntry | None, T]]


class RateLimitStoreError(RuntimeError):
    """Raised when the backing store cannot complete an update."""


class RateLimitStore(Protocol):
    """Storage for rate-limit entries.

    ``transact`` applies ``fn`` to the current entry and persists the entry it
    returns (``None`` leaves storage untouched) as one atomic step.
    """

    async def get(self, identifier: str) -> RateLimitEntry | None: ...

    async def transact(self, identifier: str, fn: Transition[T]) -> T: ...

    async def delete(self, identifier: str) -> None: ...

    async def sweep(self, older_than: float) -> int: ...

    async def close(self) -> None: ...


class MemoryRateLimitStore:
    """Single-process store; every operation completes without yielding."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, identifier: str) -> RateLimitEntry | None:
        return self._entries.get(identifier)

    async def transact(self, identifier: str, fn: Transition[T]) -> T:
        updated, result = fn(self._entries.get(identifier))
        if updated is not None:
            self._entries[identifier] = updated
        return result

    async def delete(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    async def sweep(self, older_than: float) -> int:
        stale = [
            key for key, entry in self._entries.items() if entry.last_attempt < older_than
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    async def close(self) -> None:
        self._entries.clear()


def _encode(entry: RateLimitEntry) -> dict[str, str]:
    return {
        "attempts": str(entry.attempts),
        "first_attempt": repr(entry.first_attempt),
        "last_attempt": repr(entry.last_attempt),
        "blocked_until": "" if entry.blocked_until is None else repr(entry.blocked_until),
    }


def _decode(raw: dict[str, str]) -> RateLimitEntry | None:
    if not raw:
        return None
    blocked_until = raw.get("blocked_until") or None
    return RateLimitEntry(
        attempts=int(raw["attempts"]),
        first_attempt=float(raw["first_attempt"]),
        last_attempt=float(raw["last_attempt"]),
        blocked_until=float(blocked_until) if blocked_until else None,
    )


class RedisRateLimitStore:
    """Shared store for multi-instance deployments.

    Entries are hashes that expire after ``ttl_seconds`` of inactivity, so no
    sweep is needed. Updates use WATCH/MULTI and retry on conflicting writes.
    """

    def __init__(
        self,
        client: redis.Redis,
        *,
        key_prefix: str = "storefront:rl:",
        ttl_seconds: int = 3600,
        max_retries: int = 10,
    ) -> None:
        self._redis = client
        self._key_prefix = key_prefix
        self._ttl_seconds = ttl_seconds
        self._max_retries = max_retries

    def _key(self, identifier: str) -> str:
        return f"{self._key_prefix}{identifier}"

    async def get(self, identifier: str) -> RateLimitEntry | None:
        return _decode(await self._redis.hgetall(self._key(identifier)))

    async def transact(self, identifier: str, fn: Transition[T]) -> T:
        key = self._key(identifier)
        for _ in range(self._max_retries):
            async with self._redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    current = _decode(await pipe.hgetall(key))
                    updated, result = fn(current)
                    if updated is None:
                        return result
                    pipe.multi()
                    pipe.delete(key)
                    pipe.hset(key, mapping=_encode(updated))
                    pipe.expire(key, self._ttl_seconds)
                    await pipe.execute()
                    return result
                except WatchError:
                    continue
        raise RateLimitStoreError(f"Too much contention updating {key}")

    async def delete(self, identifier: str) -> None:
        await self._redis.delete(self._key(identifier))

    async def sweep(self, older_than: float) -> int:
        return 0

    async def close(self) -> None:
        await self._redis.aclose()


def build_rate_limit_store(settings: Settings) -> RateLimitStore:
    """Return the store selected by ``RATE_LIMIT_BACKEND``."""
    if settings.rate_limit_backend == "redis":
        client = redis.from_url(
            settings.redis_url or "redis://localhost:6379/0",
            encoding="utf-8",
            decode_responses=True,
        )
        return RedisRateLimitStore(
            client,
            key_prefix=settings.rate_limit_key_prefix,
            ttl_seconds=int(settings.rate_limit_max_idle_seconds),
        )
    return MemoryRateLimitStore()


def _advance(
    entry: RateLimitEntry | None, config: RateLimitConfig, now: float
) -> tuple[RateLimitEntry | None, RateLimitStatus]:
    if entry is not None and entry.is_blocked(now):
        return None, RateLimitStatus(
            allowed=False, remaining_attempts=0, reset_time=entry.blocked_until
        )

    if entry is None or now - entry.first_attempt > config.window_seconds:
        fresh = RateLimitEntry(attempts=1, first_attempt=now, last_attempt=now)
        return fresh, RateLimitStatus(
            allowed=True, remaining_attempts=config.max_attempts - 1
        )

    attempts = entry.attempts + 1
    if attempts > config.max_attempts:
        blocked_until = now + config.block_duration_seconds
        blocked = replace(
            entry, attempts=attempts, last_attempt=now, blocked_until=blocked_until
        )
        return blocked, RateLimitStatus(
            allowed=False, remaining_attempts=0, reset_time=blocked_until
        )

    bumped = replace(entry, attempts=attempts, last_attempt=now)
    return bumped, RateLimitStatus(
        allowed=True, remaining_attempts=config.max_attempts - attempts
    )


def _standing(
    entry: RateLimitEntry | None, config: RateLimitConfig, now: float
) -> RateLimitStatus:
    if entry is not None and entry.is_blocked(now):
        return RateLimitStatus(
            allowed=False, remaining_attempts=0, reset_time=entry.blocked_until
        )
    if entry is None or now - entry.first_attempt > config.window_seconds:
        return RateLimitStatus(allowed=True, remaining_attempts=config.max_attempts)
    remaining = max(config.max_attempts - entry.attempts, 0)
    return RateLimitStatus(allowed=remaining > 0, remaining_attempts=remaining)


class RateLimiter:
    """Attempt counter per identifier: fresh, active, blocked, then fresh again.

    ``check`` counts an attempt. ``peek`` reports the same standing without
    touching the store. The periodic sweep only runs between ``start()`` and
    ``stop()``.
    """

    def __init__(
        self,
        store: RateLimitStore | None = None,
        *,
        clock: Clock = time.time,
        sweep_interval: float = 300.0,
        max_idle: float = 3600.0,
    ) -> None:
        self.store: RateLimitStore = store if store is not None else MemoryRateLimitStore()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._max_idle = max_idle
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def check(
        self, identifier: str, config: RateLimitConfig = LOGIN_RATE_LIMIT
    ) -> RateLimitStatus:
        now = self._clock()
        status = await self.store.transact(
            identifier, lambda entry: _advance(entry, config, now)
        )
        if not status.allowed:
            logger.info(
                "Rate limit in effect for %s until %s",
                mask_identifier(identifier),
                status.reset_time,
            )
        else:
            logger.debug(
                "Rate limit check for %s: %s attempts left",
                mask_identifier(identifier),
                status.remaining_attempts,
            )
        return status

    async def peek(
        self, identifier: str, config: RateLimitConfig = LOGIN_RATE_LIMIT
    ) -> RateLimitStatus:
        return _standing(await self.store.get(identifier), config, self._clock())

    async def reset(self, identifier: str) -> None:
        await self.store.delete(identifier)
        logger.debug("Rate limit reset for %s", mask_identifier(identifier))

    async def get_status(self, identifier: str) -> RateLimitEntry | None:
        return await self.store.get(identifier)

    async def sweep(self) -> int:
        removed = await self.store.sweep(self._clock() - self._max_idle)
        if removed:
            logger.debug("Swept %s idle rate limit entries", removed)
        return removed

    def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self.running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._run_sweeps())

    async def stop(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def close(self) -> None:
        await self.stop()
        await self.store.close()

    async def _run_sweeps(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception:  # pragma: no cover - sweep is best effort
                logger.exception("Rate limit sweep failed")


__all__ = [
    "API_RATE_LIMIT",
    "FORM_RATE_LIMIT",
    "LOGIN_RATE_LIMIT",
    "MemoryRateLimitStore",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitStatus",
    "RateLimitStore",
    "RateLimitStoreError",
    "RateLimiter",
    "RedisRateLimitStore",
    "build_rate_limit_store",
]

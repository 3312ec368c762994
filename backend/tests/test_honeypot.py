"""Tests for the honeypot heuristics."""

from __future__ import annotations

import pytest

from storefront.core.config import Settings
from storefront.security.honeypot import (
    HONEYPOT_FIELD_NAME,
    MAX_FILL_SECONDS,
    MIN_FILL_SECONDS,
    MemoryRenderTimeStore,
    RedisRenderTimeStore,
    build_render_time_store,
    create_honeypot,
    validate_honeypot,
)

NOW = 1_700_000_000.0


def test_create_honeypot_stamps_render_time() -> None:
    field = create_honeypot(now=NOW)
    assert field.name == HONEYPOT_FIELD_NAME == "website"
    assert field.value == ""
    assert field.timestamp == NOW


def test_human_submission_passes() -> None:
    verdict = validate_honeypot("", NOW - 10, now=NOW)
    assert not verdict.is_bot
    assert verdict.reason is None


@pytest.mark.parametrize("value", ["http://spam.example", "x"])
def test_filled_field_is_bot(value) -> None:
    verdict = validate_honeypot(value, NOW - 10, now=NOW)
    assert verdict.is_bot
    assert verdict.reason == "Honeypot field filled"


def test_whitespace_only_value_is_ignored() -> None:
    assert not validate_honeypot("   ", NOW - 10, now=NOW).is_bot


def test_too_fast_submission_is_bot() -> None:
    verdict = validate_honeypot("", NOW - 1.5, now=NOW)
    assert verdict.is_bot
    assert verdict.reason == "Submission too fast"


def test_stale_form_is_rejected() -> None:
    verdict = validate_honeypot("", NOW - MAX_FILL_SECONDS - 1, now=NOW)
    assert verdict.is_bot
    assert verdict.reason == "Session timeout"


def test_boundaries_are_inclusive() -> None:
    assert not validate_honeypot(None, NOW - MIN_FILL_SECONDS, now=NOW).is_bot
    assert not validate_honeypot(None, NOW - MAX_FILL_SECONDS, now=NOW).is_bot


def test_filled_field_wins_over_timing() -> None:
    verdict = validate_honeypot("bot", NOW, now=NOW)
    assert verdict.reason == "Honeypot field filled"


@pytest.mark.asyncio
async def test_memory_render_times_expire_with_the_form(clock) -> None:
    store = MemoryRenderTimeStore(clock=clock)
    await store.set_rendered_at("session-1", clock.now)

    clock.advance(MAX_FILL_SECONDS - 1)
    assert await store.get_rendered_at("session-1") == clock.now - MAX_FILL_SECONDS + 1
    clock.advance(1)
    assert await store.get_rendered_at("session-1") is None
    assert await store.get_rendered_at("unknown") is None


@pytest.mark.asyncio
async def test_memory_render_times_are_pruned_on_write(clock) -> None:
    store = MemoryRenderTimeStore(ttl_seconds=60, clock=clock)
    for index in range(100):
        await store.set_rendered_at(f"abandoned-{index}", clock.now)

    clock.advance(61)
    await store.set_rendered_at("active", clock.now)
    assert len(store) == 1


@pytest.mark.asyncio
async def test_redis_render_times(redis_client) -> None:
    store = RedisRenderTimeStore(redis_client, key_prefix="hp:", ttl_seconds=1800)
    await store.set_rendered_at("session-1", NOW)

    assert await store.get_rendered_at("session-1") == NOW
    assert await store.get_rendered_at("unknown") is None
    assert 0 < await redis_client.ttl("hp:session-1") <= 1800


def test_render_time_store_factory() -> None:
    assert isinstance(build_render_time_store(Settings()), MemoryRenderTimeStore)

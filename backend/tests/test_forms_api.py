"""API tests for protected form submission."""

from __future__ import annotations

import json
import time

import httpx
import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from storefront.security.rate_limiter import RateLimitEntry

VALID_PASSWORD = "Correct-Horse-9"

pytestmark = pytest.mark.asyncio


async def _open_session(client: AsyncClient, app: FastAPI) -> dict[str, str]:
    response = await client.post("/api/v1/forms/session")
    assert response.status_code == 200
    payload = response.json()
    # Backdate the issued render time so the form reads as filled in by a person.
    session_id = client.cookies.get("storefront_session")
    await app.state.render_times.set_rendered_at(session_id, time.time() - 10)
    return {payload["csrf_header"]: payload["csrf_token"]}


def _submission(values: dict[str, str]) -> dict[str, object]:
    return {"values": {"website": "", **values}}


async def test_session_issues_cookie_token_and_honeypot(client: AsyncClient) -> None:
    response = await client.post("/api/v1/forms/session")
    assert response.status_code == 200
    payload = response.json()

    assert payload["csrf_header"] == "X-CSRF-Token"
    assert len(payload["csrf_token"]) == 64
    assert payload["honeypot"]["name"] == "website"
    assert payload["honeypot"]["timestamp"] <= time.time()
    assert client.cookies.get("storefront_session")
    set_cookie = response.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=lax" in set_cookie


async def test_session_token_is_stable_per_cookie(
    app: FastAPI, client: AsyncClient
) -> None:
    first = await _open_session(client, app)
    second = await _open_session(client, app)
    assert first == second


async def test_submission_requires_csrf_header(
    app: FastAPI, client: AsyncClient
) -> None:
    await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/contact",
        json=_submission({"name": "Ada", "email": "ada@example.com", "message": "hi"}),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid CSRF token"


async def test_submission_rejects_wrong_csrf_token(
    app: FastAPI, client: AsyncClient
) -> None:
    await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/contact",
        json=_submission({"name": "Ada", "email": "ada@example.com", "message": "hi"}),
        headers={"X-CSRF-Token": "0" * 64},
    )
    assert response.status_code == 403


async def test_honeypot_hit_never_reaches_backend(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/contact",
        json=_submission(
            {
                "name": "Ada",
                "email": "ada@example.com",
                "message": "hi",
                "website": "http://spam.example",
            }
        ),
        headers=headers,
    )
    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["success"] is False
    assert detail["errors"] == {"general": ["Invalid request. Please try again."]}
    assert backend_calls == []


async def test_login_relays_with_csrf_header(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/login",
        json=_submission({"email": "Guest@Example.com", "password": VALID_PASSWORD}),
        headers=headers,
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"]["data"] == {"token": "session-token"}
    assert payload["warning"] is None

    (request,) = backend_calls
    assert request.url.path == "/api/Auth/login"
    assert request.headers["X-CSRF-Token"] == headers["X-CSRF-Token"]
    assert "website" not in json.loads(request.content)


async def test_failed_logins_warn_about_remaining_attempts(
    app: FastAPI, client: AsyncClient
) -> None:
    headers = await _open_session(client, app)
    body = _submission({"email": "guest@example.com", "password": "wrong"})

    details = []
    for _ in range(3):
        response = await client.post("/api/v1/forms/login", json=body, headers=headers)
        assert response.status_code == 422
        details.append(response.json()["detail"])

    assert details[0]["errors"] == {"general": ["Invalid credentials"]}
    assert details[0]["remaining_attempts"] is None
    assert details[2]["remaining_attempts"] == 2
    assert details[2]["warning"] == "Remaining attempts: 2"


async def test_repeated_invalid_contact_is_blocked(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    body = _submission({"name": "Ada", "email": "not-an-email", "message": "hi"})

    for expected_remaining in (2, 1, 0):
        response = await client.post("/api/v1/forms/contact", json=body, headers=headers)
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["errors"] == {"general": ["Please enter a valid email address"]}
        assert detail["remaining_attempts"] == expected_remaining

    response = await client.post("/api/v1/forms/contact", json=body, headers=headers)
    assert response.status_code == 429
    detail = response.json()["detail"]
    assert detail["blocked_until"] is not None
    assert detail["errors"] == {
        "general": ["Too many attempts! Please try again in 5 minute(s)."]
    }
    assert 0 < int(response.headers["retry-after"]) <= 300
    assert backend_calls == []


async def test_contact_message_is_escaped(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/contact",
        json=_submission(
            {"name": "Ada", "email": "ada@example.com", "message": "<b>hi</b>"}
        ),
        headers=headers,
    )
    assert response.status_code == 200
    sent = json.loads(backend_calls[0].content)
    assert sent["message"] == "&lt;b&gt;hi&lt;&#x2F;b&gt;"


async def test_register_rejects_weak_password(
    app: FastAPI, client: AsyncClient
) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/register",
        json=_submission({"name": "Ada", "email": "ada@example.com", "password": "abc"}),
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {
        "general": ["Password must be at least 8 characters long"]
    }


async def test_missing_fields_are_reported(app: FastAPI, client: AsyncClient) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/password-reset", json=_submission({}), headers=headers
    )
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {
        "general": ["Missing required field(s): email"]
    }


async def test_password_reset_is_relayed(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    response = await client.post(
        "/api/v1/forms/password-reset",
        json=_submission({"email": "guest@example.com"}),
        headers=headers,
    )
    assert response.status_code == 200
    assert backend_calls[0].url.path == "/api/Auth/forgot-password"


async def test_session_route_is_rate_limited(app: FastAPI, client: AsyncClient) -> None:
    now = time.time()
    blocked = RateLimitEntry(
        attempts=101, first_attempt=now, last_attempt=now, blocked_until=now + 600
    )
    await app.state.rate_limiter.store.transact(
        "api:127.0.0.1", lambda entry: (blocked, None)
    )

    response = await client.post("/api/v1/forms/session")
    assert response.status_code == 429
    assert "retry-after" in response.headers
    assert len(app.state.csrf.store) == 0
    assert len(app.state.render_times) == 0


async def test_render_time_is_taken_from_the_session(
    client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    response = await client.post("/api/v1/forms/session")
    payload = response.json()
    body = _submission({"email": "guest@example.com"})
    body["rendered_at"] = time.time() - 10

    response = await client.post(
        "/api/v1/forms/password-reset",
        json=body,
        headers={payload["csrf_header"]: payload["csrf_token"]},
    )
    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == {
        "general": ["Invalid request. Please try again."]
    }
    assert backend_calls == []


async def test_submission_without_issued_render_time_is_rejected(
    app: FastAPI, client: AsyncClient, backend_calls: list[httpx.Request]
) -> None:
    headers = await _open_session(client, app)
    await app.state.render_times.close()

    response = await client.post(
        "/api/v1/forms/password-reset",
        json=_submission({"email": "guest@example.com"}),
        headers=headers,
    )
    assert response.status_code == 422
    assert backend_calls == []

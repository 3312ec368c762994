"""Shared FastAPI dependencies."""

from __future__ import annotations

import math
import time
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from storefront.core.config import Settings
from storefront.core.settings import SiteSettings, get_site_settings
from storefront.integrations.backend_client import BackendClient
from storefront.security.csrf import CSRF_HEADER_NAME, CsrfProtection
from storefront.security.honeypot import RenderTimeStore
from storefront.security.rate_limiter import API_RATE_LIMIT, RateLimiter


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_csrf_protection(request: Request) -> CsrfProtection:
    return request.app.state.csrf


def get_backend_client(request: Request) -> BackendClient:
    return request.app.state.backend_client


def get_render_time_store(request: Request) -> RenderTimeStore:
    return request.app.state.render_times


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def retry_after_seconds(reset_time: float | None) -> int:
    if reset_time is None:
        return 1
    return max(1, math.ceil(reset_time - time.time()))


async def get_current_site_settings(
    settings: Annotated[Settings, Depends(get_app_settings)],
    client: Annotated[BackendClient, Depends(get_backend_client)],
) -> SiteSettings:
    """Resolve pricing settings from the backend, defaulting to configuration."""
    return await client.fetch_site_settings(get_site_settings(settings))


async def enforce_api_rate_limit(
    request: Request,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Apply the API preset per client address."""
    result = await limiter.check(
        f"api:{client_ip(request) or 'anonymous'}", API_RATE_LIMIT
    )
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(retry_after_seconds(result.reset_time))},
        )


def get_session_id(
    request: Request, settings: Annotated[Settings, Depends(get_app_settings)]
) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def require_csrf(
    session_id: Annotated[str | None, Depends(get_session_id)],
    csrf: Annotated[CsrfProtection, Depends(get_csrf_protection)],
    csrf_token: Annotated[str | None, Header(alias=CSRF_HEADER_NAME)] = None,
) -> str:
    """Return the session id once the CSRF header matches its stored token."""
    if not session_id or not await csrf.validate(session_id, csrf_token):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token"
        )
    return session_id

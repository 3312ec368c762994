"""HTTP client for the upstream hotel backend API."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Mapping

import httpx
from pydantic import ValidationError

from storefront.core.settings import SiteSettings
from storefront.security.csrf import CsrfProtection
from storefront.security.rate_limiter import API_RATE_LIMIT, RateLimiter

logger = logging.getLogger(__name__)

_SITE_SETTINGS_FIELDS = {
    "profitMargin": "profit_margin",
    "defaultVatRate": "default_vat_rate",
    "extraFee": "extra_fee",
    "oneTimeCouponPrice": "one_time_coupon_price",
    "annualCouponPrice": "annual_coupon_price",
}


class BackendError(RuntimeError):
    """Raised when the backend rejects a request or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("title")
        if message:
            return str(message)
    return f"HTTP {response.status_code}"


def _unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class BackendClient:
    """Thin async wrapper around the hotel backend.

    Requests made on behalf of a caller are charged against the API rate-limit
    preset and carry the caller's CSRF token when one is known.
    """

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: RateLimiter | None = None,
        csrf: CsrfProtection | None = None,
        settings_ttl: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url.rstrip("/") if base_url else None
        self._client = httpx.AsyncClient(
            base_url=self.base_url or "",
            timeout=timeout,
            transport=transport,
        )
        self._limiter = limiter
        self._csrf = csrf
        self._settings_ttl = settings_ttl
        self._clock = clock
        self._settings_cache: tuple[float, SiteSettings] | None = None

    @property
    def configured(self) -> bool:
        return self.base_url is not None

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_site_settings(self, defaults: SiteSettings) -> SiteSettings:
        """Return the backend's pricing settings, falling back to ``defaults``."""
        if not self.configured:
            return defaults
        now = self._clock()
        if self._settings_cache is not None and now - self._settings_cache[0] < self._settings_ttl:
            return self._settings_cache[1]

        try:
            response = await self._client.get("/settings/site")
            response.raise_for_status()
            data = _unwrap(response.json())
        except (httpx.HTTPError, ValueError):
            logger.warning("Could not load site settings; using configured defaults")
            return defaults

        overrides = {}
        if isinstance(data, dict):
            overrides = {
                field: data[key]
                for key, field in _SITE_SETTINGS_FIELDS.items()
                if data.get(key) is not None
            }
        try:
            resolved = SiteSettings.model_validate({**defaults.model_dump(), **overrides})
        except ValidationError:
            logger.warning("Backend returned invalid site settings; using defaults")
            return defaults
        self._settings_cache = (now, resolved)
        return resolved

    async def post(
        self,
        path: str,
        payload: Mapping[str, Any],
        *,
        identifier: str | None = None,
        session_id: str | None = None,
    ) -> Any:
        """POST ``payload`` and return the decoded JSON body (``{}`` if none)."""
        if not self.configured:
            raise BackendError("Backend API is not configured")

        if self._limiter is not None and identifier:
            status = await self._limiter.check(f"api:{identifier}", API_RATE_LIMIT)
            if not status.allowed:
                minutes = math.ceil(((status.reset_time or 0) - self._clock()) / 60)
                raise BackendError(
                    f"Too many requests! Please try again in {minutes} minute(s).",
                    status_code=429,
                )

        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._csrf is not None and session_id:
            headers = await self._csrf.attach_header(session_id, headers)

        try:
            response = await self._client.post(path, json=dict(payload), headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Backend request to %s failed: %s", path, exc)
            raise BackendError("Backend is unavailable. Please try again later.") from exc

        if response.is_error:
            raise BackendError(_error_message(response), status_code=response.status_code)
        if "application/json" in response.headers.get("content-type", ""):
            return response.json()
        return {}


__all__ = ["BackendClient", "BackendError"]

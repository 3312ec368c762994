"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager
from urllib.parse import urlsplit

import httpx
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api import build_api_router
from storefront.core.config import Settings, get_settings
from storefront.integrations.backend_client import BackendClient
from storefront.security.csrf import CSRF_HEADER_NAME, CsrfProtection, build_csrf_store
from storefront.security.headers import NO_CACHE_HEADERS, build_secure_headers
from storefront.security.honeypot import build_render_time_store
from storefront.security.logging_filters import install_sensitive_filter
from storefront.security.rate_limiter import RateLimiter, build_rate_limit_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    limiter: RateLimiter = app.state.rate_limiter
    limiter.start()
    try:
        yield
    finally:
        try:
            await limiter.close()
        except Exception:  # pragma: no cover - limiter shutdown
            logger.exception("Failed to close rate limiter")
        try:
            await app.state.csrf.store.close()
        except Exception:  # pragma: no cover - csrf store shutdown
            logger.exception("Failed to close CSRF store")
        try:
            await app.state.render_times.close()
        except Exception:  # pragma: no cover - render time store shutdown
            logger.exception("Failed to close honeypot render time store")
        try:
            await app.state.backend_client.close()
        except Exception:  # pragma: no cover - http client shutdown
            logger.exception("Failed to close backend client")


def _origin(url: str | None) -> str | None:
    if not url:
        return None
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}" if parts.scheme and parts.netloc else None


def create_app(
    settings: Settings | None = None,
    *,
    backend_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        build_rate_limit_store(settings),
        sweep_interval=settings.rate_limit_sweep_interval_seconds,
        max_idle=settings.rate_limit_max_idle_seconds,
    )
    app.state.csrf = CsrfProtection(build_csrf_store(settings))
    app.state.render_times = build_render_time_store(settings)
    app.state.backend_client = BackendClient(
        settings.backend_api_url,
        timeout=settings.backend_timeout_seconds,
        transport=backend_transport,
        limiter=app.state.rate_limiter,
        csrf=app.state.csrf,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin for origin in settings.cors_allow_origins if origin],
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID", CSRF_HEADER_NAME],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

    secure_headers = build_secure_headers(
        backend_origin=_origin(settings.backend_api_url)
    )

    @app.middleware("http")
    async def _apply_security_headers(request, call_next):
        response = await call_next(request)
        secure_headers.set_headers(response)
        for name, value in NO_CACHE_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    install_sensitive_filter()

    app.include_router(build_api_router(settings.api_v1_prefix))

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Return a simple welcome message."""
        return {"message": settings.app_name}

    return app


app = create_app()

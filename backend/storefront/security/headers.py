"""HTTP security headers applied to every response."""

from __future__ import annotations

from secure import (
    CacheControl,
    ContentSecurityPolicy,
    PermissionsPolicy,
    ReferrerPolicy,
    Secure,
    XContentTypeOptions,
    XFrameOptions,
)

NO_CACHE_HEADERS = {"Pragma": "no-cache", "Expires": "0"}


def build_secure_headers(*, backend_origin: str | None = None) -> Secure:
    """Return the header set for API responses.

    ``backend_origin`` is added to ``connect-src`` so the storefront may call
    the hotel backend directly.
    """
    connect_sources = ["'self'", "https://www.google.com"]
    if backend_origin:
        connect_sources.insert(1, backend_origin)

    csp = (
        ContentSecurityPolicy()
        .default_src("'self'")
        .script_src(
            "'self'",
            "'unsafe-inline'",
            "'unsafe-eval'",
            "https://www.google.com",
            "https://www.gstatic.com",
        )
        .style_src("'self'", "'unsafe-inline'", "https://fonts.googleapis.com")
        .font_src("'self'", "https://fonts.gstatic.com")
        .img_src("'self'", "data:", "https:", "blob:")
        .connect_src(*connect_sources)
        .frame_src("https://www.google.com")
    )
    return Secure(
        csp=csp,
        xfo=XFrameOptions().deny(),
        xcto=XContentTypeOptions().nosniff(),
        referrer=ReferrerPolicy().strict_origin_when_cross_origin(),
        permissions=PermissionsPolicy().camera().microphone().geolocation("self"),
        cache=CacheControl().no_store().no_cache().must_revalidate(),
    )


__all__ = ["NO_CACHE_HEADERS", "build_secure_headers"]

"""Protected form endpoints."""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from storefront.api import deps
from storefront.core.config import Settings
from storefront.integrations.backend_client import BackendClient
from storefront.schemas.forms import (
    FormSessionRead,
    FormSubmission,
    FormSubmissionRead,
    HoneypotRead,
)
from storefront.security.csrf import CSRF_HEADER_NAME, CsrfProtection
from storefront.security.honeypot import RenderTimeStore, create_honeypot
from storefront.security.rate_limiter import RateLimiter
from storefront.services import form_service
from storefront.services.form_service import FormKind
from storefront.services.secure_form import SecureForm

router = APIRouter(prefix="/forms", tags=["forms"])


@router.post(
    "/session",
    response_model=FormSessionRead,
    summary="Open a protected form session",
    dependencies=[Depends(deps.enforce_api_rate_limit)],
)
async def open_form_session(
    response: Response,
    settings: Annotated[Settings, Depends(deps.get_app_settings)],
    session_id: Annotated[str | None, Depends(deps.get_session_id)],
    limiter: Annotated[RateLimiter, Depends(deps.get_rate_limiter)],
    csrf: Annotated[CsrfProtection, Depends(deps.get_csrf_protection)],
    render_times: Annotated[RenderTimeStore, Depends(deps.get_render_time_store)],
) -> FormSessionRead:
    """Issue the CSRF token and honeypot a client needs to render a form."""
    session_id = session_id or secrets.token_urlsafe(32)
    honeypot = create_honeypot()
    await render_times.set_rendered_at(session_id, honeypot.timestamp)
    form = SecureForm(limiter, csrf, session_id=session_id, honeypot=honeypot)
    token = await form.mount()
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )
    return FormSessionRead(
        csrf_token=token or "",
        csrf_header=CSRF_HEADER_NAME,
        honeypot=HoneypotRead(name=honeypot.name, timestamp=honeypot.timestamp),
    )


@router.post(
    "/{form_kind}",
    response_model=FormSubmissionRead,
    summary="Submit a protected form",
)
async def submit_protected_form(
    form_kind: FormKind,
    payload: FormSubmission,
    request: Request,
    session_id: Annotated[str, Depends(deps.require_csrf)],
    limiter: Annotated[RateLimiter, Depends(deps.get_rate_limiter)],
    csrf: Annotated[CsrfProtection, Depends(deps.get_csrf_protection)],
    client: Annotated[BackendClient, Depends(deps.get_backend_client)],
    render_times: Annotated[RenderTimeStore, Depends(deps.get_render_time_store)],
) -> FormSubmissionRead:
    rendered_at = await render_times.get_rendered_at(session_id)
    result = await form_service.submit_form(
        form_kind,
        payload.values,
        # no issued render time reads as a timed-out form
        rendered_at=rendered_at if rendered_at is not None else 0.0,
        limiter=limiter,
        client=client,
        csrf=csrf,
        session_id=session_id,
        client_ip=deps.client_ip(request),
    )
    body = FormSubmissionRead(
        success=result.success,
        data=result.data,
        errors=result.errors,
        remaining_attempts=result.remaining_attempts,
        blocked_until=result.blocked_until,
        warning=result.warning,
    )
    if result.success:
        return body
    if result.blocked_until is not None:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=body.model_dump(),
            headers={"Retry-After": str(deps.retry_after_seconds(result.blocked_until))},
        )
    raise HTTPException(status_code=422, detail=body.model_dump())

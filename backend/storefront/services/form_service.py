"""Protected storefront forms relayed to the hotel backend."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from storefront.integrations.backend_client import BackendClient
from storefront.security.csrf import CsrfProtection
from storefront.security.honeypot import HONEYPOT_FIELD_NAME, HoneypotField
from storefront.security.input_validator import (
    is_strong_password,
    is_valid_email,
    sanitize_html,
)
from storefront.security.rate_limiter import (
    FORM_RATE_LIMIT,
    LOGIN_RATE_LIMIT,
    RateLimitConfig,
    RateLimiter,
)
from storefront.services.secure_form import (
    FormHandler,
    SecureForm,
    SecureFormOptions,
    SubmissionResult,
)


class FormKind(str, Enum):
    LOGIN = "login"
    REGISTER = "register"
    CONTACT = "contact"
    PASSWORD_RESET = "password-reset"


@dataclass(frozen=True, slots=True)
class FormSpec:
    path: str
    rate_limit: RateLimitConfig
    required: tuple[str, ...]


FORM_SPECS: dict[FormKind, FormSpec] = {
    FormKind.LOGIN: FormSpec("/Auth/login", LOGIN_RATE_LIMIT, ("email", "password")),
    FormKind.REGISTER: FormSpec(
        "/Auth/register", FORM_RATE_LIMIT, ("email", "password", "name")
    ),
    FormKind.CONTACT: FormSpec(
        "/public/contact", FORM_RATE_LIMIT, ("name", "email", "message")
    ),
    FormKind.PASSWORD_RESET: FormSpec(
        "/Auth/forgot-password", FORM_RATE_LIMIT, ("email",)
    ),
}


class FormValidationError(ValueError):
    """Raised when submitted values fail validation before relaying."""


def rate_limit_identifier(
    kind: FormKind, values: Mapping[str, Any], client_ip: str | None
) -> str:
    email = str(values.get("email") or "").strip().lower()
    return f"form:{kind.value}:{email or client_ip or 'default'}"


def clean_payload(kind: FormKind, values: Mapping[str, Any]) -> dict[str, Any]:
    """Drop the decoy field and validate what the backend needs."""
    payload = {key: value for key, value in values.items() if key != HONEYPOT_FIELD_NAME}
    spec = FORM_SPECS[kind]
    missing = [name for name in spec.required if not str(payload.get(name) or "").strip()]
    if missing:
        raise FormValidationError(f"Missing required field(s): {', '.join(missing)}")

    email = str(payload["email"]).strip()
    if not is_valid_email(email):
        raise FormValidationError("Please enter a valid email address")
    payload["email"] = email

    if kind is FormKind.REGISTER:
        check = is_strong_password(str(payload["password"]))
        if not check.valid:
            raise FormValidationError(check.errors[0])
    if kind is FormKind.CONTACT:
        payload["message"] = sanitize_html(str(payload["message"]))
    return payload


def build_handler(
    kind: FormKind,
    client: BackendClient,
    *,
    session_id: str | None = None,
    client_ip: str | None = None,
) -> FormHandler:
    spec = FORM_SPECS[kind]

    async def _relay(values: Mapping[str, Any]) -> Any:
        payload = clean_payload(kind, values)
        return await client.post(
            spec.path,
            payload,
            identifier=payload.get("email") or client_ip,
            session_id=session_id,
        )

    return _relay


async def submit_form(
    kind: FormKind,
    values: Mapping[str, Any],
    *,
    rendered_at: float,
    limiter: RateLimiter,
    client: BackendClient,
    csrf: CsrfProtection | None = None,
    session_id: str | None = None,
    client_ip: str | None = None,
    clock: Callable[[], float] = time.time,
) -> SubmissionResult:
    """Run ``values`` through the secure-form pipeline and relay on success."""
    spec = FORM_SPECS[kind]
    form = SecureForm(
        limiter,
        csrf,
        SecureFormOptions(
            identifier=rate_limit_identifier(kind, values, client_ip),
            rate_limit_config=spec.rate_limit,
        ),
        session_id=session_id,
        honeypot=HoneypotField(name=HONEYPOT_FIELD_NAME, value="", timestamp=rendered_at),
        clock=clock,
    )
    handler = build_handler(kind, client, session_id=session_id, client_ip=client_ip)
    return await form.submit(values, handler)


__all__ = [
    "FORM_SPECS",
    "FormKind",
    "FormSpec",
    "FormValidationError",
    "build_handler",
    "clean_payload",
    "rate_limit_identifier",
    "submit_form",
]

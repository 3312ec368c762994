"""Protected form schema definitions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HoneypotRead(BaseModel):
    name: str
    timestamp: float


class FormSessionRead(BaseModel):
    """What a client needs to render a protected form."""

    csrf_token: str
    csrf_header: str
    honeypot: HoneypotRead


class FormSubmission(BaseModel):
    """Submitted field values; the render time comes from the session."""

    values: dict[str, Any] = Field(default_factory=dict)


class FormSubmissionRead(BaseModel):
    success: bool
    data: Any = None
    errors: dict[str, list[str]] = Field(default_factory=dict)
    remaining_attempts: int | None = None
    blocked_until: float | None = None
    warning: str | None = None

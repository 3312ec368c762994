"""Submission pipeline that guards a form with honeypot, rate limit and CSRF."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from storefront.security.csrf import CsrfProtection
from storefront.security.honeypot import HoneypotField, create_honeypot, validate_honeypot
from storefront.security.rate_limiter import (
    FORM_RATE_LIMIT,
    RateLimitConfig,
    RateLimiter,
    RateLimitStatus,
)
from storefront.security.redact import mask_identifier

logger = logging.getLogger(__name__)

GENERAL_FIELD = "general"
WARNING_THRESHOLD = 3
INVALID_REQUEST_MESSAGE = "Invalid request. Please try again."
DEFAULT_ERROR_MESSAGE = "An error occurred. Please try again."
BUSY_MESSAGE = "A submission is already in progress."

FormHandler = Callable[[Mapping[str, Any]], Awaitable[Any]]


class FormState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    BLOCKED = "blocked"


@dataclass(frozen=True, slots=True)
class SecureFormOptions:
    """Which checks run and how failures are charged.

    With ``charge_failed_attempts`` the failure path re-runs ``check`` (one more
    attempt counted per failed submission); otherwise it only ``peek``s.
    """

    identifier: str = "default"
    enable_rate_limit: bool = True
    enable_honeypot: bool = True
    enable_csrf: bool = True
    rate_limit_config: RateLimitConfig = FORM_RATE_LIMIT
    charge_failed_attempts: bool = False
    refresh_csrf_on_success: bool = False


@dataclass(slots=True)
class SubmissionResult:
    success: bool
    data: Any = None
    errors: dict[str, list[str]] = field(default_factory=dict)
    remaining_attempts: int | None = None
    blocked_until: float | None = None
    bot_detected: bool = False

    @property
    def warning(self) -> str | None:
        if self.remaining_attempts is None or self.blocked_until is not None:
            return None
        return f"Remaining attempts: {self.remaining_attempts}"


def minutes_until(reset_time: float, now: float) -> int:
    return math.ceil((reset_time - now) / 60)


class SecureForm:
    """One form instance: idle, submitting, or blocked until a reset time."""

    def __init__(
        self,
        limiter: RateLimiter,
        csrf: CsrfProtection | None = None,
        options: SecureFormOptions | None = None,
        *,
        session_id: str | None = None,
        honeypot: HoneypotField | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limiter = limiter
        self.csrf = csrf
        self.options = options or SecureFormOptions()
        self.session_id = session_id
        self._clock = clock
        self.honeypot = honeypot or create_honeypot(now=clock())
        self.remaining_attempts: int | None = None
        self._blocked_until: float | None = None
        self._submitting = False

    @property
    def blocked_until(self) -> float | None:
        if self._blocked_until is None or self._clock() >= self._blocked_until:
            return None
        return self._blocked_until

    def clear_lapsed_block(self) -> None:
        """Forget a block whose reset time has passed, with its attempt count."""
        if self._blocked_until is not None and self.blocked_until is None:
            self._blocked_until = None
            self.remaining_attempts = None

    @property
    def state(self) -> FormState:
        if self.blocked_until is not None:
            return FormState.BLOCKED
        if self._submitting:
            return FormState.SUBMITTING
        return FormState.IDLE

    async def mount(self) -> str | None:
        """Issue the session's CSRF token if protection is enabled."""
        if not self.options.enable_csrf or self.csrf is None or not self.session_id:
            return None
        return await self.csrf.initialize(self.session_id)

    def block_message(self) -> str:
        self.clear_lapsed_block()
        blocked_until = self.blocked_until
        if blocked_until is None:
            return ""
        minutes = minutes_until(blocked_until, self._clock())
        return f"Form temporarily locked. Please try again in {minutes} minute(s)."

    def _note_remaining(self, status: RateLimitStatus) -> None:
        if status.remaining_attempts < WARNING_THRESHOLD:
            self.remaining_attempts = status.remaining_attempts

    def _blocked_result(self) -> SubmissionResult:
        blocked_until = self._blocked_until or self._clock()
        minutes = minutes_until(blocked_until, self._clock())
        return SubmissionResult(
            success=False,
            errors={
                GENERAL_FIELD: [
                    f"Too many attempts! Please try again in {minutes} minute(s)."
                ]
            },
            remaining_attempts=0,
            blocked_until=blocked_until,
        )

    async def submit(
        self, values: Mapping[str, Any], handler: FormHandler
    ) -> SubmissionResult:
        self.clear_lapsed_block()
        state = self.state
        if state is FormState.BLOCKED:
            return self._blocked_result()
        if state is FormState.SUBMITTING:
            return SubmissionResult(success=False, errors={GENERAL_FIELD: [BUSY_MESSAGE]})

        options = self.options
        identifier = options.identifier

        if options.enable_honeypot:
            verdict = validate_honeypot(
                str(values.get(self.honeypot.name) or ""),
                self.honeypot.timestamp,
                now=self._clock(),
            )
            if verdict.is_bot:
                logger.warning("Bot detected on form submission: %s", verdict.reason)
                return SubmissionResult(
                    success=False,
                    errors={GENERAL_FIELD: [INVALID_REQUEST_MESSAGE]},
                    bot_detected=True,
                )

        if options.enable_rate_limit:
            status = await self.limiter.check(identifier, options.rate_limit_config)
            if not status.allowed:
                self._blocked_until = status.reset_time or self._clock()
                return self._blocked_result()
            self._note_remaining(status)

        self._submitting = True
        try:
            data = await handler(values)
        except Exception as exc:
            logger.warning(
                "Form submission failed for %s: %s", mask_identifier(identifier), exc
            )
            if options.enable_rate_limit:
                if options.charge_failed_attempts:
                    follow_up = await self.limiter.check(
                        identifier, options.rate_limit_config
                    )
                else:
                    follow_up = await self.limiter.peek(
                        identifier, options.rate_limit_config
                    )
                self._note_remaining(follow_up)
            return SubmissionResult(
                success=False,
                errors={GENERAL_FIELD: [str(exc) or DEFAULT_ERROR_MESSAGE]},
                remaining_attempts=self.remaining_attempts,
            )
        finally:
            self._submitting = False

        if options.enable_rate_limit:
            await self.limiter.reset(identifier)
            self.remaining_attempts = None
        if (
            options.enable_csrf
            and options.refresh_csrf_on_success
            and self.csrf is not None
            and self.session_id
        ):
            await self.csrf.refresh(self.session_id)
        return SubmissionResult(success=True, data=data)


__all__ = [
    "FormHandler",
    "FormState",
    "SecureForm",
    "SecureFormOptions",
    "SubmissionResult",
]

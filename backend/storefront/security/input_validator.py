"""Validation helpers for user-supplied form input."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal
from urllib.parse import urlparse

_HTML_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
}
_HTML_PATTERN = re.compile(r"[&<>\"'/]")
_SQL_PATTERN = re.compile(r"['\";\\]")
_EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_PHONE_PATTERN = re.compile(r"^(\+90|0)?5\d{9}$")
_SCRIPT_PATTERN = re.compile(r"<script|<iframe|javascript:|onerror=", re.IGNORECASE)
_SQLI_PATTERN = re.compile(r"(\bOR\b|\bAND\b).*=|['\";]--", re.IGNORECASE)
_SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>]")
_COMMON_PASSWORDS = (
    "password",
    "123456",
    "12345678",
    "qwerty",
    "abc123",
    "password123",
    "111111",
    "123123",
    "admin",
    "letmein",
)

Strength = Literal["weak", "medium", "strong"]


@dataclass(slots=True)
class PasswordCheck:
    valid: bool
    strength: Strength
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class StringCheck:
    valid: bool
    error: str | None = None


def sanitize_html(value: str) -> str:
    """Escape characters that carry meaning in HTML."""
    return _HTML_PATTERN.sub(lambda match: _HTML_ESCAPES[match.group(0)], value)


def sanitize_sql(value: str) -> str:
    return _SQL_PATTERN.sub("", value)


def is_valid_email(email: str) -> bool:
    if not _EMAIL_PATTERN.fullmatch(email):
        return False
    if len(email) > 254:
        return False
    local, _, domain = email.partition("@")
    return len(local) <= 64 and len(domain) <= 253


def is_strong_password(password: str) -> PasswordCheck:
    errors: list[str] = []
    score = 0

    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    elif len(password) >= 12:
        score += 2
    else:
        score += 1

    checks = (
        (r"[A-Z]", "Password must contain an uppercase letter"),
        (r"[a-z]", "Password must contain a lowercase letter"),
        (r"[0-9]", "Password must contain a digit"),
    )
    for pattern, message in checks:
        if re.search(pattern, password):
            score += 1
        else:
            errors.append(message)

    if _SPECIAL_CHARS.search(password):
        score += 1
    else:
        errors.append("Password must contain a special character")

    lowered = password.lower()
    if any(common in lowered for common in _COMMON_PASSWORDS):
        errors.append("Password is too common")
        score = max(0, score - 2)

    strength: Strength = "weak"
    if score >= 5:
        strength = "strong"
    elif score >= 3:
        strength = "medium"
    return PasswordCheck(valid=not errors, strength=strength, errors=errors)


def is_valid_phone_number(phone: str) -> bool:
    """Turkish mobile numbers: +905xxxxxxxxx, 05xxxxxxxxx or 5xxxxxxxxx."""
    return bool(_PHONE_PATTERN.fullmatch(re.sub(r"[\s-]", "", phone)))


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def is_clean_string(
    value: str,
    *,
    allow_spaces: bool = True,
    allow_special_chars: bool = False,
    max_length: int = 1000,
) -> StringCheck:
    if len(value) > max_length:
        return StringCheck(False, f"Must be at most {max_length} characters")
    if _SCRIPT_PATTERN.search(value) or _SQLI_PATTERN.search(value):
        return StringCheck(False, "Contains invalid characters")
    if not allow_spaces and re.search(r"\s", value):
        return StringCheck(False, "Must not contain whitespace")
    if not allow_special_chars and re.search(r"[^a-zA-Z0-9\s]", value):
        return StringCheck(False, "Must not contain special characters")
    return StringCheck(True)


def is_valid_iban(iban: str) -> bool:
    """Validate a Turkish IBAN with the mod-97 check."""
    clean = re.sub(r"[\s-]", "", iban).upper()
    if not clean.startswith("TR") or len(clean) != 26:
        return False
    if not clean[2:].isalnum():
        return False
    rearranged = clean[4:] + clean[:4]
    numeric = "".join(str(int(ch, 36)) for ch in rearranged)
    return int(numeric) % 97 == 1


def is_valid_tc_kimlik_no(value: str) -> bool:
    """Validate a Turkish national identity number."""
    if not re.fullmatch(r"\d{11}", value) or value[0] == "0":
        return False
    digits = [int(ch) for ch in value]
    if sum(digits[:10]) % 10 != digits[10]:
        return False
    odd = digits[0] + digits[2] + digits[4] + digits[6] + digits[8]
    even = digits[1] + digits[3] + digits[5] + digits[7]
    return (odd * 7 - even) % 10 == digits[9]


def is_valid_credit_card(number: str) -> bool:
    """Luhn check on 13-19 digit card numbers."""
    cleaned = re.sub(r"[\s-]", "", number)
    if not re.fullmatch(r"\d{13,19}", cleaned):
        return False
    total = 0
    for index, ch in enumerate(reversed(cleaned)):
        digit = int(ch)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


__all__ = [
    "PasswordCheck",
    "StringCheck",
    "is_clean_string",
    "is_strong_password",
    "is_valid_credit_card",
    "is_valid_email",
    "is_valid_iban",
    "is_valid_phone_number",
    "is_valid_tc_kimlik_no",
    "is_valid_url",
    "sanitize_html",
    "sanitize_sql",
]

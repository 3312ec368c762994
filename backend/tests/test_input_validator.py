"""Tests for input validation helpers."""

from __future__ import annotations

import pytest

from storefront.security import input_validator as v


def test_sanitize_html_escapes_markup() -> None:
    assert v.sanitize_html('<b>"x"</b>') == "&lt;b&gt;&quot;x&quot;&lt;&#x2F;b&gt;"
    assert v.sanitize_html("Tom & Jerry's") == "Tom &amp; Jerry&#x27;s"


def test_sanitize_sql_strips_quotes_and_terminators() -> None:
    assert v.sanitize_sql("a'; DROP--") == "a DROP--"
    assert v.sanitize_sql('say "hi"\\') == "say hi"


@pytest.mark.parametrize(
    ("email", "expected"),
    [
        ("guest@example.com", True),
        ("first.last+tag@sub.example.co", True),
        ("bad@", False),
        ("no-at-sign.example.com", False),
        ("a" * 65 + "@example.com", False),
        ("guest@example.com\n", False),
    ],
)
def test_is_valid_email(email, expected) -> None:
    assert v.is_valid_email(email) is expected


def test_strong_password() -> None:
    check = v.is_strong_password("Correct!Horse9")
    assert check.valid
    assert check.strength == "strong"
    assert check.errors == []


def test_weak_password_lists_every_problem() -> None:
    check = v.is_strong_password("abc")
    assert not check.valid
    assert check.strength == "weak"
    assert check.errors[0] == "Password must be at least 8 characters long"
    assert "Password must contain an uppercase letter" in check.errors
    assert "Password must contain a digit" in check.errors
    assert "Password must contain a special character" in check.errors


def test_common_password_is_rejected() -> None:
    check = v.is_strong_password("Password123!")
    assert not check.valid
    assert "Password is too common" in check.errors


@pytest.mark.parametrize(
    ("phone", "expected"),
    [
        ("+90 532 123 45 67", True),
        ("0532-123-45-67", True),
        ("5321234567", True),
        ("0212 123 45 67", False),
        ("12345", False),
        ("5321234567\n", False),
    ],
)
def test_is_valid_phone_number(phone, expected) -> None:
    assert v.is_valid_phone_number(phone) is expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/rooms?id=1", True),
        ("http://localhost:3000", True),
        ("ftp://example.com", False),
        ("javascript:alert(1)", False),
        ("not a url", False),
    ],
)
def test_is_valid_url(url, expected) -> None:
    assert v.is_valid_url(url) is expected


def test_is_clean_string() -> None:
    assert v.is_clean_string("Hello world").valid
    assert v.is_clean_string("<script>alert(1)</script>", allow_special_chars=True) == (
        v.StringCheck(False, "Contains invalid characters")
    )
    assert v.is_clean_string("' OR 1=1 --", allow_special_chars=True).error == (
        "Contains invalid characters"
    )
    assert v.is_clean_string("a b", allow_spaces=False).error == (
        "Must not contain whitespace"
    )
    assert v.is_clean_string("abc!").error == "Must not contain special characters"
    assert v.is_clean_string("x" * 11, max_length=10).error == (
        "Must be at most 10 characters"
    )


def test_is_valid_iban() -> None:
    assert v.is_valid_iban("TR33 0006 1005 1978 6457 8413 26")
    assert not v.is_valid_iban("TR33 0006 1005 1978 6457 8413 27")
    assert not v.is_valid_iban("DE89370400440532013000")


def test_is_valid_tc_kimlik_no() -> None:
    assert v.is_valid_tc_kimlik_no("10000000146")
    assert not v.is_valid_tc_kimlik_no("10000000147")
    assert not v.is_valid_tc_kimlik_no("01234567890")
    assert not v.is_valid_tc_kimlik_no("1234")


def test_is_valid_credit_card() -> None:
    assert v.is_valid_credit_card("4111 1111 1111 1111")
    assert v.is_valid_credit_card("5500-0000-0000-0004")
    assert not v.is_valid_credit_card("4111 1111 1111 1112")
    assert not v.is_valid_credit_card("4111")

"""Helpers for masking identifiers before they reach the logs."""

from __future__ import annotations

import ipaddress


def mask_email(value: str | None) -> str | None:
    if not value or "@" not in value:
        return value
    local, _, domain = value.partition("@")
    if not local:
        return "***@" + domain
    return f"{local[0]}***@{domain}"


def mask_ip(value: str) -> str:
    try:
        address = ipaddress.ip_address(value)
    except ValueError:
        return value
    if address.version == 4:
        head, _, _ = value.rpartition(".")
        return f"{head}.***"
    return str(address.exploded).rsplit(":", 4)[0] + ":****"


def mask_identifier(value: str | None) -> str | None:
    """Mask rate-limit identifiers (emails or client addresses).

    A ``namespace:`` prefix such as ``form:login:`` is kept readable.
    """
    if not value:
        return value
    if "@" in value:
        namespace, sep, email = value.rpartition(":")
        return f"{namespace}{sep}{mask_email(email)}"
    namespace, rest = "", value
    while ":" in rest and mask_ip(rest) == rest:
        head, _, rest = rest.partition(":")
        namespace += head + ":"
    return namespace + mask_ip(rest)


__all__ = ["mask_email", "mask_identifier", "mask_ip"]

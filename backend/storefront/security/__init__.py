"""Abuse-protection primitives: rate limiting, honeypot, CSRF and headers."""

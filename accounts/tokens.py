"""Verification token issuing."""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app, has_app_context

from utils.clock import utcnow

TOKEN_BYTES = 32
DEFAULT_TTL_HOURS = 24


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


def token_ttl() -> timedelta:
    """Return the configured lifetime of a verification token."""

    hours = DEFAULT_TTL_HOURS
    if has_app_context():
        hours = current_app.config.get("VERIFICATION_TOKEN_TTL_HOURS", DEFAULT_TTL_HOURS)
    return timedelta(hours=hours)


def issue(now: datetime | None = None, ttl: timedelta | None = None) -> IssuedToken:
    """Generate a fresh random token and its expiry instant."""

    issued_at = now or utcnow()
    return IssuedToken(
        token=secrets.token_hex(TOKEN_BYTES),
        expires_at=issued_at + (ttl or token_ttl()),
    )


def token_digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_preview(token: str | None) -> str:
    """Shorten a token for log lines."""

    if not token:
        return "none"
    if len(token) <= 10:
        return "***"
    return f"{token[:5]}...{token[-5:]}"

"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from typing import Iterable

from flask import Request

from utils.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise ValidationError("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise ValidationError("Request JSON body is required.")

    if not isinstance(data, dict):
        raise ValidationError("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise ValidationError("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not _has_value(data.get(key))]
        if missing:
            raise ValidationError(
                "Missing required fields: {}.".format(", ".join(sorted(missing)))
            )

    return data


def _has_value(value: object) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None and value != [] and value != {}


def normalize_email(raw_email: object) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    if not isinstance(raw_email, str):
        return ""
    return raw_email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def text_field(data: dict, key: str) -> str:
    """Return a stripped string field, or an empty string when absent."""

    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string.")
    return value.strip()

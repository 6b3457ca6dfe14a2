"""HTTP error types raised by the account and course services."""

from __future__ import annotations

from werkzeug.exceptions import BadRequest, ServiceUnavailable, Unauthorized


class ValidationError(BadRequest):
    """Missing or malformed input, detected before any store access."""

    error_code = "validation_error"


class InvalidToken(BadRequest):
    error_code = "invalid_token"
    description = (
        "Invalid verification token. Please request a new verification email."
    )


class TokenExpired(BadRequest):
    error_code = "token_expired"
    description = (
        "Verification token has expired. Please request a new verification email."
    )


class AmbiguousToken(BadRequest):
    """More than one account matched the token at the same matching tier."""

    error_code = "ambiguous_token"
    description = (
        "This verification link could not be matched to a single account. "
        "Please request a new verification email."
    )


class NeedsVerification(Unauthorized):
    """Credentials were valid but the account's email is not verified yet."""

    error_code = "needs_verification"
    needs_verification = True
    description = (
        "Please verify your email before logging in. "
        "Check your inbox for the verification link."
    )


class StoreUnavailable(ServiceUnavailable):
    error_code = "store_unavailable"
    description = "Database connection failed. Please try again later."


DEFAULT_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "rate_limited",
    503: "store_unavailable",
}


def error_code_for(error) -> str:
    """Return the machine-readable code for an HTTP error."""

    code = getattr(error, "error_code", None)
    if code:
        return code
    return DEFAULT_ERROR_CODES.get(getattr(error, "code", None), "http_error")

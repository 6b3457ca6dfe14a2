"""Email verification state machine.

An account is either ``Unverified(token, expires_at)`` or ``Verified``; there is
no way back from ``Verified``. Transitions are written through
:mod:`accounts.store`, and the one that matters under concurrency
(unverified -> verified) is a compare-and-swap on the stored token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from werkzeug.exceptions import Conflict, InternalServerError, Unauthorized

from models.user import USER_ROLES, User
from notifications import get_notifier
from utils.clock import utcnow
from utils.errors import InvalidToken, NeedsVerification, TokenExpired, ValidationError
from utils.request_validation import is_valid_email, normalize_email

from . import store, tokens
from .matcher import find_account_by_token, mask_email

VERIFIED = "verified"
ALREADY_VERIFIED = "already_verified"
TOKEN_SENT = "token_sent"

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid email or password."

MESSAGES = {
    VERIFIED: "Email verified successfully.",
    ALREADY_VERIFIED: "Your email is already verified. You can log in now.",
    TOKEN_SENT: "Verification email sent. Please check your inbox.",
}


@dataclass(frozen=True)
class AccountState:
    """Snapshot of an account's verification fields at read time."""

    user_id: int
    is_verified: bool
    token: str | None
    expires_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "AccountState":
        return cls(
            user_id=user.id,
            is_verified=bool(user.is_verified),
            token=user.verification_token,
            expires_at=user.verification_token_expires,
        )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


@dataclass(frozen=True)
class VerificationOutcome:
    status: str
    user: User

    @property
    def message(self) -> str:
        return MESSAGES[self.status]


@dataclass(frozen=True)
class ReissueOutcome:
    status: str
    email_sent: bool = False

    @property
    def message(self) -> str:
        return MESSAGES[self.status]


@dataclass(frozen=True)
class RegistrationOutcome:
    user: User
    email_sent: bool


def verify(raw_token: str | None, now: datetime | None = None) -> VerificationOutcome:
    """Consume a verification token and mark its account verified."""

    if not raw_token or not raw_token.strip():
        raise ValidationError("Verification token is required.")

    now = now or utcnow()
    account = find_account_by_token(raw_token)
    if account is None:
        current_app.logger.info(
            "Verification rejected: no account for token %s",
            tokens.token_preview(raw_token),
        )
        raise InvalidToken()
    return complete_verification(AccountState.from_user(account), now)


def complete_verification(state: AccountState, now: datetime) -> VerificationOutcome:
    """Apply the unverified -> verified transition for a previously read state."""

    if state.is_verified:
        return VerificationOutcome(ALREADY_VERIFIED, store.get_account(state.user_id))

    if state.is_expired(now):
        current_app.logger.info(
            "Verification rejected: token for user %s expired at %s",
            state.user_id,
            state.expires_at.isoformat(),
        )
        raise TokenExpired()

    if state.token and store.mark_verified(state.user_id, state.token, now):
        user = store.get_account(state.user_id)
        current_app.logger.info("User %s verified email %s", user.id, mask_email(user.email))
        return VerificationOutcome(VERIFIED, user)

    # Lost the race (or the token was replaced meanwhile): re-read and decide.
    current = store.get_account(state.user_id)
    if current is not None and current.is_verified:
        return VerificationOutcome(ALREADY_VERIFIED, current)
    raise InvalidToken()


def reissue_token(user: User, now: datetime | None = None) -> ReissueOutcome:
    """Replace the account's token and email the new link."""

    if user.is_verified:
        return ReissueOutcome(ALREADY_VERIFIED)

    user_id, email = user.id, user.email
    issued = tokens.issue(now)
    if not store.store_new_token(user_id, issued):
        current = store.get_account(user_id)
        if current is not None and current.is_verified:
            return ReissueOutcome(ALREADY_VERIFIED)
        raise InternalServerError("Failed to update verification token.")

    email_sent = get_notifier().send_verification(email, issued.token)
    if not email_sent:
        current_app.logger.warning(
            "Verification email to %s failed; token kept for a later resend",
            mask_email(email),
        )
    return ReissueOutcome(TOKEN_SENT, email_sent)


def resend_verification(email: str, now: datetime | None = None) -> ReissueOutcome | None:
    """Reissue for the account with ``email``; None when there is none."""

    user = store.find_by_email(email)
    if user is None:
        current_app.logger.info("Resend requested for unknown email %s", mask_email(email))
        return None
    return reissue_token(user, now)


def authenticate(email: str, password: str) -> User:
    """Return the account for valid credentials, with one uniform failure."""

    user = store.find_by_email(email)
    if user is None or not user.check_password(password):
        raise Unauthorized(INVALID_CREDENTIALS)
    return user


def reconcile_on_login(email: str, password: str, now: datetime | None = None) -> User:
    """Authenticate, then gate the login on the verification state.

    An unverified account whose token is missing or expired gets a fresh one
    (and a new email) before the login is refused; a live token is left alone
    so repeated attempts do not spam the inbox.
    """

    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required.")

    now = now or utcnow()
    user = authenticate(email, password)
    if user.is_verified:
        return user

    if not user.has_live_token(now):
        outcome = reissue_token(user, now)
        if outcome.status == ALREADY_VERIFIED:
            return store.get_account(user.id)
        current_app.logger.info(
            "Reissued verification token for %s during login", mask_email(user.email)
        )
    raise NeedsVerification()


def register_account(
    name: str,
    email: str,
    password: str,
    role: str | None = None,
    now: datetime | None = None,
) -> RegistrationOutcome:
    """Create an unverified account and send its verification email.

    The account is kept when the email cannot be sent; the caller reports
    ``email_sent`` and the user can ask for a resend.
    """

    email = normalize_email(email)
    role = (role or "student").strip().lower()
    errors = []
    if not name:
        errors.append("name is required")
    if not email:
        errors.append("email is required")
    elif not is_valid_email(email):
        errors.append("email is invalid")
    if not password:
        errors.append("password is required")
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if role not in USER_ROLES:
        errors.append("role must be one of: {}".format(", ".join(USER_ROLES)))
    if errors:
        raise ValidationError("; ".join(errors) + ".")

    if store.find_by_email(email) is not None:
        raise Conflict("User already exists.")

    issued = tokens.issue(now)
    user = User(
        name=name,
        email=email,
        role=role,
        is_verified=False,
        verification_token=issued.token,
        verification_token_expires=issued.expires_at,
    )
    user.set_password(password)
    store.create_account(user)
    current_app.logger.info("Registered user %s as %s", mask_email(email), role)

    email_sent = get_notifier().send_verification(email, issued.token)
    if not email_sent:
        current_app.logger.warning(
            "Verification email to %s failed after registration", mask_email(email)
        )
    return RegistrationOutcome(user, email_sent)


def force_verify(email: str, password: str, now: datetime | None = None) -> None:
    """Development override: verify an account given its password.

    Says nothing about whether the account exists or the password matched.
    """

    user = store.find_by_email(normalize_email(email))
    if user is None or not user.check_password(password):
        return
    if store.force_mark_verified(user.id, now or utcnow()):
        current_app.logger.warning("Force-verified user %s", mask_email(user.email))

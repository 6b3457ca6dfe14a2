"""Authoritative read/write path for account verification fields.

Every change to ``is_verified``, ``verification_token`` and
``verification_token_expires`` goes through the single-row UPDATE statements in
this module. There is no second writer for these columns.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from werkzeug.exceptions import Conflict

from models import db
from models.user import User
from utils.errors import StoreUnavailable

from .tokens import IssuedToken, token_digest

UNSET = object()


@contextmanager
def store_errors() -> Iterator[None]:
    """Roll back on failure and surface connectivity errors as 503s."""

    try:
        yield
    except OperationalError as exc:
        db.session.rollback()
        current_app.logger.error("Account store unavailable: %s", exc.orig or exc)
        raise StoreUnavailable() from exc
    except SQLAlchemyError:
        db.session.rollback()
        raise


def _execute(statement) -> int:
    with store_errors():
        result = db.session.execute(statement)
        db.session.commit()
    return result.rowcount


def get_account(user_id: int) -> User | None:
    with store_errors():
        return db.session.get(User, user_id, populate_existing=True)


def find_by_email(email: str) -> User | None:
    """Case-insensitive lookup of an account by email."""

    with store_errors():
        return User.query.filter(func.lower(User.email) == email.lower()).first()


def create_account(user: User) -> User:
    """Insert a new account, mapping unique-email races to 409."""

    try:
        with store_errors():
            db.session.add(user)
            db.session.commit()
    except IntegrityError as exc:
        raise Conflict("User already exists.") from exc
    return user


def set_verification_fields(
    user_id: int,
    *,
    is_verified=UNSET,
    token=UNSET,
    expires_at=UNSET,
) -> bool:
    """Update any subset of the verification fields for one account."""

    values = {}
    if is_verified is not UNSET:
        values["is_verified"] = bool(is_verified)
    if token is not UNSET:
        values["verification_token"] = token
    if expires_at is not UNSET:
        values["verification_token_expires"] = expires_at
    if not values:
        return False
    if values.get("is_verified"):
        values["verification_token"] = None
        values["verification_token_expires"] = None

    statement = (
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return _execute(statement) == 1


def store_new_token(user_id: int, issued: IssuedToken) -> bool:
    """Overwrite the account's token; only unverified accounts accept one."""

    statement = (
        update(User)
        .where(User.id == user_id, User.is_verified.is_(False))
        .values(
            verification_token=issued.token,
            verification_token_expires=issued.expires_at,
        )
        .execution_options(synchronize_session=False)
    )
    return _execute(statement) == 1


def mark_verified(user_id: int, token: str, now: datetime) -> bool:
    """Atomically flip an account to verified if it still holds ``token``.

    Returns False when another request already consumed or replaced the token.
    """

    statement = (
        update(User)
        .where(
            User.id == user_id,
            User.verification_token == token,
            User.is_verified.is_(False),
        )
        .values(
            is_verified=True,
            verification_token=None,
            verification_token_expires=None,
            consumed_token_digest=token_digest(token),
            verified_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return _execute(statement) == 1


def force_mark_verified(user_id: int, now: datetime) -> bool:
    statement = (
        update(User)
        .where(User.id == user_id, User.is_verified.is_(False))
        .values(
            is_verified=True,
            verification_token=None,
            verification_token_expires=None,
            verified_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return _execute(statement) == 1


def shutdown() -> None:
    """Release the session and pooled connections (test teardown)."""

    db.session.remove()
    db.engine.dispose()

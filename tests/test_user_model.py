"""Tests for the User model helpers."""

from datetime import datetime, timedelta

from models import db
from models.user import User


def test_password_helpers(app_ctx):
    user = User(name="Helper", email="helper@example.com", role="student")
    user.set_password("password123")
    db.session.add(user)
    db.session.commit()

    assert user.password_hash != "password123"
    assert user.check_password("password123") is True
    assert user.check_password("wrong") is False
    assert user.is_verified is False
    assert user.role == "student"


def test_token_expiry_helpers():
    expires = datetime(2030, 1, 1, 12, 0, 0)
    user = User(verification_token="tok", verification_token_expires=expires)

    assert user.token_expired(expires - timedelta(seconds=1)) is False
    assert user.token_expired(expires) is False
    assert user.token_expired(expires + timedelta(seconds=1)) is True
    assert user.has_live_token(expires) is True
    assert user.has_live_token(expires + timedelta(seconds=1)) is False


def test_missing_token_is_not_live():
    user = User(verification_token=None, verification_token_expires=None)

    assert user.token_expired() is False
    assert user.has_live_token() is False


def test_to_dict_hides_credentials(app_ctx):
    user = User(
        name="Alice",
        email="alice@x.com",
        role="student",
        verification_token="secret-token",
    )
    user.set_password("password123")
    db.session.add(user)
    db.session.commit()

    data = user.to_dict()

    assert data["email"] == "alice@x.com"
    assert data["isVerified"] is False
    assert "password_hash" not in data
    assert "verification_token" not in data
    assert "secret-token" not in str(data)

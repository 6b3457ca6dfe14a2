"""Tests covering registration, login and email verification over HTTP."""

from __future__ import annotations

from datetime import datetime

import pytest
from flask.testing import FlaskClient
from flask_mail import BadHeaderError
from sqlalchemy.exc import OperationalError

from accounts import store, verification
from models import db
from models.user import User


def _register(client: FlaskClient, email: str = "alice@x.com", password: str = "password123"):
    return client.post(
        "/auth/register",
        json={"name": "Alice", "email": email, "password": password, "role": "student"},
    )


def _stored_token(app, email: str) -> str | None:
    with app.app_context():
        return store.find_by_email(email).verification_token


def _create_user(email: str, password: str, role: str = "student", *, verified: bool = False) -> User:
    """Helper to create and persist a user."""

    user = User(name=email.split("@")[0], email=email, role=role, is_verified=verified)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def test_register_verify_then_login(client: FlaskClient, app, outbox):
    """A new account must verify its email before it can log in."""

    response = _register(client)
    assert response.status_code == 201
    body = response.get_json()
    assert body["email_sent"] is True
    assert body["user"]["isVerified"] is False
    assert "password_hash" not in body["user"]

    token = _stored_token(app, "alice@x.com")
    assert len(outbox) == 1
    assert outbox[0].recipients == ["alice@x.com"]
    assert outbox[0].subject == "Verify Your Email"
    assert f"https://careers.example/verify-email?token={token}" in outbox[0].body

    blocked = client.post("/auth/login", json={"email": "alice@x.com", "password": "password123"})
    assert blocked.status_code == 401
    assert blocked.get_json()["needsVerification"] is True
    assert blocked.get_json()["code"] == "needs_verification"
    # the token was still live, so no second email
    assert len(outbox) == 1

    verified = client.get("/auth/verify-email", query_string={"token": token})
    assert verified.status_code == 200
    assert verified.get_json() == {
        "message": "Email verified successfully.",
        "status": "verified",
    }

    login = client.post("/auth/login", json={"email": "Alice@X.com", "password": "password123"})
    assert login.status_code == 200
    payload = login.get_json()
    assert payload["access_token"]
    assert payload["user"]["email"] == "alice@x.com"
    assert payload["user"]["isVerified"] is True


def test_verify_link_twice_reports_already_verified(client: FlaskClient, app, outbox):
    _register(client)
    token = _stored_token(app, "alice@x.com")

    first = client.get("/auth/verify-email", query_string={"token": token})
    second = client.get("/auth/verify-email", query_string={"token": token})

    assert first.get_json()["status"] == "verified"
    assert second.status_code == 200
    assert second.get_json()["status"] == "already_verified"


def test_verify_accepts_percent_encoded_token(client: FlaskClient, app, outbox):
    _register(client)
    with app.app_context():
        user = store.find_by_email("alice@x.com")
        store.set_verification_fields(user.id, token="abc+def/ghi=jkl0123456789")

    response = client.get("/auth/verify-email?token=abc%252Bdef%252Fghi%253Djkl0123456789")

    assert response.status_code == 200
    assert response.get_json()["status"] == "verified"


@pytest.mark.parametrize(
    "query, code",
    [
        ("", "validation_error"),
        ("?token=", "validation_error"),
        ("?token=" + "0" * 64, "invalid_token"),
    ],
)
def test_verify_rejects_bad_tokens(client: FlaskClient, outbox, query, code):
    _register(client)

    response = client.get(f"/auth/verify-email{query}")

    assert response.status_code == 400
    assert response.get_json()["code"] == code


def test_verify_rejects_expired_token(client: FlaskClient, app, outbox):
    _register(client)
    with app.app_context():
        user = store.find_by_email("alice@x.com")
        token = user.verification_token
        store.set_verification_fields(user.id, expires_at=datetime(2000, 1, 1))

    response = client.get("/auth/verify-email", query_string={"token": token})

    assert response.status_code == 400
    body = response.get_json()
    assert body["code"] == "token_expired"
    assert "expired" in body["detail"]
    assert _stored_token(app, "alice@x.com") == token


def test_login_with_expired_token_sends_new_email(client: FlaskClient, app, outbox):
    _register(client)
    with app.app_context():
        user = store.find_by_email("alice@x.com")
        old_token = user.verification_token
        store.set_verification_fields(user.id, expires_at=datetime(2000, 1, 1))

    response = client.post("/auth/login", json={"email": "alice@x.com", "password": "password123"})

    assert response.status_code == 401
    assert response.get_json()["needsVerification"] is True
    new_token = _stored_token(app, "alice@x.com")
    assert new_token != old_token
    assert len(outbox) == 2
    assert new_token in outbox[1].body


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"email": "j1@example.com"}, 400),
        ({"password": "J1Pass123"}, 400),
        ({"email": "j1@example.com", "password": "wrong"}, 401),
        ({"email": "nobody@example.com", "password": "J1Pass123"}, 401),
    ],
)
def test_login_validation(client: FlaskClient, app, payload, status_code):
    """Login endpoint should validate request bodies and credentials."""

    with app.app_context():
        _create_user("j1@example.com", "J1Pass123", verified=True)

    response = client.post("/auth/login", json=payload)

    assert response.status_code == status_code
    assert "needsVerification" not in response.get_json()


def test_login_requires_json(client: FlaskClient):
    response = client.post("/auth/login", data="email=a@b.com", content_type="text/plain")

    assert response.status_code == 400
    assert "application/json" in response.get_json()["detail"]


def test_register_rejects_duplicates_and_bad_input(client: FlaskClient, outbox):
    assert _register(client).status_code == 201

    duplicate = _register(client, email="ALICE@x.com")
    assert duplicate.status_code == 409
    assert duplicate.get_json()["code"] == "conflict"

    invalid = client.post(
        "/auth/register",
        json={"name": "Bob", "email": "bob@x.com", "password": "123"},
    )
    assert invalid.status_code == 400
    assert invalid.get_json()["code"] == "validation_error"
    assert len(outbox) == 1


def test_register_reports_unsent_email(client: FlaskClient, app):
    app.config["MAIL_DEFAULT_SENDER"] = None

    response = _register(client)

    assert response.status_code == 201
    assert response.get_json()["email_sent"] is False
    assert _stored_token(app, "alice@x.com") is not None


@pytest.mark.parametrize(
    "failure",
    [BadHeaderError(), ValueError("bad address"), ConnectionRefusedError("relay down")],
)
def test_register_survives_mail_transport_errors(client: FlaskClient, app, monkeypatch, failure):
    def _fail(message):
        raise failure

    monkeypatch.setattr(app.extensions["notifier"].mail, "send", _fail)

    response = _register(client)

    assert response.status_code == 201
    assert response.get_json()["email_sent"] is False
    assert _stored_token(app, "alice@x.com") is not None


def test_resend_for_unknown_email_is_indistinguishable(client: FlaskClient, app, outbox):
    response = client.post("/auth/resend-verification", json={"email": "ghost@x.com"})

    assert response.status_code == 200
    assert "If your email exists" in response.get_json()["message"]
    assert outbox == []
    with app.app_context():
        assert User.query.count() == 0


def test_resend_replaces_token_for_unverified_account(client: FlaskClient, app, outbox):
    _register(client)
    old_token = _stored_token(app, "alice@x.com")

    response = client.post("/auth/resend-verification", json={"email": "Alice@x.com"})

    assert response.status_code == 200
    new_token = _stored_token(app, "alice@x.com")
    assert new_token != old_token
    assert len(outbox) == 2

    stale = client.get("/auth/verify-email", query_string={"token": old_token})
    assert stale.status_code == 400
    assert stale.get_json()["code"] == "invalid_token"


def test_resend_for_verified_account_sends_nothing(client: FlaskClient, app, outbox):
    with app.app_context():
        _create_user("done@x.com", "password123", verified=True)

    response = client.post("/auth/resend-verification", json={"email": "done@x.com"})

    assert response.status_code == 200
    assert outbox == []


def test_resend_requires_email(client: FlaskClient):
    response = client.post("/auth/resend-verification", json={"email": "  "})

    assert response.status_code == 400


def test_store_outage_returns_503(client: FlaskClient, monkeypatch):
    def _unavailable(email):
        raise OperationalError("SELECT users", {}, Exception("connection refused"))

    monkeypatch.setattr(verification.store, "find_by_email", _unavailable)

    response = client.post("/auth/login", json={"email": "alice@x.com", "password": "password123"})

    assert response.status_code == 503
    body = response.get_json()
    assert body["code"] == "store_unavailable"
    assert body["detail"] == "Database connection failed. Please try again later."


def test_me_returns_current_user(client: FlaskClient, app):
    with app.app_context():
        _create_user("me@x.com", "password123", verified=True)

    token = client.post(
        "/auth/login", json={"email": "me@x.com", "password": "password123"}
    ).get_json()["access_token"]

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "me@x.com"
    assert client.get("/auth/me").status_code == 401


def test_force_verify_allows_login(dev_app):
    client = dev_app.test_client()
    _register(client)

    wrong = client.post(
        "/auth/force-verify", json={"email": "alice@x.com", "password": "not-it"}
    )
    assert wrong.status_code == 200
    with dev_app.app_context():
        assert store.find_by_email("alice@x.com").is_verified is False

    response = client.post(
        "/auth/force-verify", json={"email": "alice@x.com", "password": "password123"}
    )
    assert response.status_code == 200
    assert response.get_json()["message"] == wrong.get_json()["message"]

    login = client.post("/auth/login", json={"email": "alice@x.com", "password": "password123"})
    assert login.status_code == 200


def test_debug_token_reports_matches(dev_app):
    client = dev_app.test_client()
    _register(client)
    with dev_app.app_context():
        token = store.find_by_email("alice@x.com").verification_token

    response = client.post("/auth/debug-token", json={"token": token})

    assert response.status_code == 200
    report = response.get_json()
    assert report["exactMatchCount"] == 1
    assert report["potentialMatches"][0]["maskedEmail"] == "ali***@x.com"
    assert token not in response.get_data(as_text=True)

    assert client.post("/auth/debug-token", json={}).status_code == 400

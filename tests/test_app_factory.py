"""Tests for the Flask application factory."""
from __future__ import annotations

from notifications import MailNotifier


def test_health_endpoint_returns_ok(client):
    """The health endpoint should respond with an OK payload."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    assert {"auth", "courses"}.issubset(bps)
    # development-only routes stay off unless explicitly enabled
    assert "auth_dev" not in bps


def test_dev_blueprint_registered_when_enabled(dev_app):
    assert "auth_dev" in dev_app.blueprints
    rules = {rule.rule for rule in dev_app.url_map.iter_rules()}
    assert "/auth/force-verify" in rules
    assert "/auth/debug-token" in rules


def test_dev_routes_absent_by_default(client):
    response = client.post(
        "/auth/force-verify", json={"email": "a@example.com", "password": "secret1"}
    )
    assert response.status_code == 404


def test_notifier_installed_with_base_url(app):
    notifier = app.extensions["notifier"]
    assert isinstance(notifier, MailNotifier)
    assert notifier.verification_url("abc") == "https://careers.example/verify-email?token=abc"

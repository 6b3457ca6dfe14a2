"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from accounts import store  # noqa: E402
from app import create_app, mail  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAIL_DEFAULT_SENDER = "noreply@careers.example"
    APP_BASE_URL = "https://careers.example"
    ENABLE_DEV_ENDPOINTS = False


def build_app(**overrides) -> Flask:
    """Create an app from the test config with attribute overrides."""

    class TestConfig(_BaseTestConfig):
        pass

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    return create_app(TestConfig)


@pytest.fixture()
def app() -> Flask:
    """Create a Flask application instance for tests."""

    application = build_app()

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.drop_all()
        store.shutdown()


@pytest.fixture()
def dev_app() -> Flask:
    """Application with the development-only auth endpoints registered."""

    application = build_app(ENABLE_DEV_ENDPOINTS=True)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.drop_all()
        store.shutdown()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def app_ctx(app: Flask):
    """Run the test body inside an application context."""

    with app.app_context():
        yield app


@pytest.fixture()
def outbox(app: Flask):
    """Collect every email dispatched through Flask-Mail during the test."""

    with mail.record_messages() as messages:
        yield messages

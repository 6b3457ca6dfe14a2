"""Application configuration module."""

import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _engine_options(database_url: str, timeout: int) -> dict:
    """Return engine options carrying a driver-appropriate connect timeout."""

    if database_url.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout}}
    if database_url.startswith(("postgresql", "mysql")):
        return {"connect_args": {"connect_timeout": timeout}}
    return {}


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///career_guidance.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Store connectivity; seconds, not a latency-critical path
    STORE_CONNECT_TIMEOUT = int(os.getenv("STORE_CONNECT_TIMEOUT", "10"))
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(DATABASE_URL, STORE_CONNECT_TIMEOUT)

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATE_LIMIT = os.getenv("RATE_LIMIT", "60 per minute")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")

    # Mail relay (Flask-Mail)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", True)
    MAIL_USE_SSL = _env_flag("MAIL_USE_SSL", False)
    MAIL_USERNAME = os.getenv("MAIL_USERNAME") or os.getenv("EMAIL_USER")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD") or os.getenv("EMAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER") or MAIL_USERNAME

    # Email verification. APP_BASE_URL is the frontend origin: links point at its
    # /verify-email page, which calls this API's /auth/verify-email.
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:3000")
    VERIFICATION_TOKEN_TTL_HOURS = int(os.getenv("VERIFICATION_TOKEN_TTL_HOURS", "24"))
    TOKEN_MATCH_MIN_LENGTH = int(os.getenv("TOKEN_MATCH_MIN_LENGTH", "16"))
    TOKEN_MATCH_MAX_LENGTH = int(os.getenv("TOKEN_MATCH_MAX_LENGTH", "256"))

    # Development-only escape hatches (force-verify, debug-token)
    ENABLE_DEV_ENDPOINTS = _env_flag("ENABLE_DEV_ENDPOINTS", False)

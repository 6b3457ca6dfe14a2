"""Authentication blueprint: registration, login and email verification."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import create_access_token, get_jwt_identity, jwt_required
from werkzeug.exceptions import NotFound

from accounts import matcher, store, verification
from utils.errors import ValidationError
from utils.request_validation import normalize_email, parse_json_request, text_field

auth_bp = Blueprint("auth", __name__)
auth_dev_bp = Blueprint("auth_dev", __name__)

RESEND_MESSAGE = (
    "If your email exists in our system and is not yet verified, "
    "you will receive a verification email shortly."
)
FORCE_VERIFY_MESSAGE = "If your account exists, it has been verified. You can now log in."


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a new, unverified account and email its verification link."""

    payload = parse_json_request(request)
    outcome = verification.register_account(
        name=text_field(payload, "name"),
        email=payload.get("email"),
        password=text_field(payload, "password"),
        role=text_field(payload, "role") or None,
    )

    if outcome.email_sent:
        message = (
            "User registered successfully. "
            "Please check your email to verify your account."
        )
    else:
        message = (
            "User registered, but the verification email could not be sent. "
            "Please request a new verification email."
        )

    return (
        jsonify(
            {
                "message": message,
                "user": outcome.user.to_dict(),
                "email_sent": outcome.email_sent,
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a verified user and return a JWT access token."""

    payload = parse_json_request(request)
    user = verification.reconcile_on_login(
        payload.get("email"), text_field(payload, "password")
    )

    token = create_access_token(identity=str(user.id))
    return (
        jsonify(
            {
                "message": "Login successful.",
                "access_token": token,
                "user": user.to_dict(),
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/verify-email", methods=["GET"])
def verify_email() -> tuple:
    """Consume the token from a verification link."""

    token = request.args.get("token", "")
    if not token.strip():
        raise ValidationError("Verification token is required.")

    outcome = verification.verify(token)
    return jsonify({"message": outcome.message, "status": outcome.status}), HTTPStatus.OK


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification() -> tuple:
    """Issue a new verification token; the reply never reveals account existence."""

    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    if not email:
        raise ValidationError("Email is required.")

    verification.resend_verification(email)
    return jsonify({"message": RESEND_MESSAGE}), HTTPStatus.OK


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def current_user() -> tuple:
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        raise NotFound("User not found.")
    user = store.get_account(user_id)
    if user is None:
        raise NotFound("User not found.")
    return jsonify({"user": user.to_dict()}), HTTPStatus.OK


@auth_dev_bp.route("/force-verify", methods=["POST"])
def force_verify() -> tuple:
    """Development-only manual verification, gated on the account password."""

    payload = parse_json_request(request, required_keys=("email", "password"))
    verification.force_verify(payload.get("email"), text_field(payload, "password"))
    return jsonify({"message": FORCE_VERIFY_MESSAGE}), HTTPStatus.OK


@auth_dev_bp.route("/debug-token", methods=["POST"])
def debug_token() -> tuple:
    """Development-only report of how a token relates to outstanding tokens."""

    payload = parse_json_request(request, required_keys=("token",))
    token = payload.get("token")
    if not isinstance(token, str):
        raise ValidationError("token must be a string.")
    return jsonify(matcher.diagnose(token)), HTTPStatus.OK

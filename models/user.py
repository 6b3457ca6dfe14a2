"""User model definition."""

from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from utils.clock import utcnow

from . import db


USER_ROLES = ("student", "teacher")


class User(db.Model):
    """Represents a platform account (student or teacher)."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="student")
    is_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    verification_token = db.Column(db.String(255), unique=True, nullable=True)
    verification_token_expires = db.Column(db.DateTime, nullable=True)
    consumed_token_digest = db.Column(db.String(64), nullable=True, index=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def token_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once ``now`` is past the token expiry."""

        if self.verification_token_expires is None:
            return False
        return (now or utcnow()) > self.verification_token_expires

    def has_live_token(self, now: Optional[datetime] = None) -> bool:
        return bool(self.verification_token) and not self.token_expired(now)

    def to_dict(self) -> dict:
        """Serialize the public view of the account."""

        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isVerified": bool(self.is_verified),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
